from __future__ import annotations

import logging
import math
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shotreview.errors import CompressionError, NotFoundError
from shotreview.services.failed_index import FailedTestIndex
from shotreview.services.paths import PathMapper

LOGGER = logging.getLogger("shotreview.references")


@dataclass
class SizeComparison:
    size_a: int
    size_b: int

    @property
    def difference(self) -> int:
        return self.size_a - self.size_b


def compare_size(path_a: Path, path_b: Path) -> SizeComparison:
    return SizeComparison(size_a=Path(path_a).stat().st_size, size_b=Path(path_b).stat().st_size)


def compression_rate(original_size: int, compressed_size: int) -> int:
    """Percent saved by recompression, rounded half up. Negative when the file grew."""
    if original_size <= 0:
        return 0
    return int(math.floor((original_size - compressed_size) * 100 / original_size + 0.5))


class OptiPNG:
    """Lossless PNG recompression through the ``optipng`` executable."""

    def __init__(self, binary: str = "optipng") -> None:
        self._binary = binary

    @property
    def binary(self) -> str:
        return self._binary

    def command(self, source: Path, destination: Path) -> list[str]:
        return [self._binary, "-out", str(destination), str(source)]

    def compress(self, source: Path, destination: Path) -> None:
        args = self.command(source, destination)
        try:
            proc = subprocess.run(args, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise CompressionError(f"Failed to run {self._binary}: {exc}") from exc
        if proc.returncode != 0:
            output = (proc.stderr or proc.stdout or "").strip()
            raise CompressionError(
                f"{self._binary} exited with status {proc.returncode}: {output or 'no output'}"
            )


class ReferenceUpdater:
    """Promote the current capture of a failed test to be its reference image."""

    def __init__(self, failed_tests: FailedTestIndex, paths: PathMapper, optimizer: OptiPNG) -> None:
        self._failed_tests = failed_tests
        self._paths = paths
        self._optimizer = optimizer

    def update_reference(self, descriptor: Any) -> str:
        test = self._failed_tests.find(descriptor)
        if test is None:
            raise NotFoundError("No such test failed")
        if test.reference_path is None or test.current_path is None:
            raise NotFoundError("Failed test has no screenshot to accept")

        reference_path = Path(test.reference_path)
        current_path = Path(test.current_path)

        reference_path.parent.mkdir(parents=True, exist_ok=True)
        self._delete_reference(reference_path)
        self._optimizer.compress(current_path, reference_path)

        sizes = compare_size(current_path, reference_path)
        rate = compression_rate(sizes.size_a, sizes.size_b)
        LOGGER.info("Reference image %s has been updated (compressed on: %s%%).", reference_path, rate)
        return self._paths.ref_url(reference_path, test.browser_id)

    @staticmethod
    def _delete_reference(reference_path: Path) -> None:
        # optipng will not overwrite a destination whose content differs; it
        # leaves the old file plus a backup. Remove the old reference first.
        if reference_path.is_file():
            reference_path.unlink()
