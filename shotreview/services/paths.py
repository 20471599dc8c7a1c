from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Dict, Mapping, Union
from urllib.parse import quote

REF_PREFIX = "/ref"
CURRENT_PREFIX = "/curr"
DIFF_PREFIX = "/diff"

PathLike = Union[str, Path]


def to_url(root_dir: PathLike, full_path: PathLike, prefix: str) -> str:
    """Map ``full_path`` under ``root_dir`` onto the URL namespace ``prefix``."""
    relative = os.path.relpath(os.fspath(full_path), os.fspath(root_dir))
    relative = relative.replace(os.sep, "/")
    return f"{prefix}/{quote(relative, safe='/')}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _with_timestamp(url: str) -> str:
    # viewers cache images by URL; a fresh query string forces a reload after accept
    return f"{url}?t={_now_ms()}"


class PathMapper:
    """Expose staged screenshots under the reference, current and diff namespaces."""

    def __init__(
        self,
        reference_dirs: Mapping[str, PathLike],
        current_dir: PathLike,
        diff_dir: PathLike,
    ) -> None:
        self._reference_dirs: Dict[str, Path] = {
            browser_id: Path(root) for browser_id, root in reference_dirs.items()
        }
        self._current_dir = Path(current_dir)
        self._diff_dir = Path(diff_dir)

    @property
    def reference_dirs(self) -> Dict[str, Path]:
        return dict(self._reference_dirs)

    def reference_dir(self, browser_id: str) -> Path:
        try:
            return self._reference_dirs[browser_id]
        except KeyError as exc:
            raise KeyError(f"No reference directory configured for browser {browser_id!r}") from exc

    def ref_url(self, full_path: PathLike, browser_id: str) -> str:
        root = self.reference_dir(browser_id)
        return _with_timestamp(to_url(root, full_path, f"{REF_PREFIX}/{quote(browser_id, safe='')}"))

    def current_url(self, full_path: PathLike) -> str:
        return _with_timestamp(to_url(self._current_dir, full_path, CURRENT_PREFIX))

    def diff_url(self, full_path: PathLike) -> str:
        return to_url(self._diff_dir, full_path, DIFF_PREFIX)
