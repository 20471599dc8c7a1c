from __future__ import annotations

import logging
import secrets
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

LOGGER = logging.getLogger("shotreview.workspace")


def _temp_path(root: Path, prefix: str) -> Path:
    return root / f"{prefix}-{secrets.token_hex(6)}"


def _recreate_dir(path: Path) -> Path:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


class TempWorkspace:
    """Staging directories for current captures and generated diff images."""

    def __init__(
        self,
        root: Path,
        current_dir: Optional[Path] = None,
        diff_dir: Optional[Path] = None,
    ) -> None:
        self.current_dir = Path(current_dir) if current_dir else _temp_path(root, "shotreview-curr")
        self.diff_dir = Path(diff_dir) if diff_dir else _temp_path(root, "shotreview-diff")

    def recreate(self) -> None:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="shotreview-workspace") as pool:
            futures = [pool.submit(_recreate_dir, path) for path in (self.current_dir, self.diff_dir)]
            for future in futures:
                future.result()
        LOGGER.debug("Workspace ready: current=%s diff=%s", self.current_dir, self.diff_dir)

    def remove(self) -> None:
        for path in (self.current_dir, self.diff_dir):
            if path.exists():
                shutil.rmtree(path, ignore_errors=True)
