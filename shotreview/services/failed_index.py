from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

TestKey = Tuple[Tuple[str, ...], str, str]


@dataclass
class TestResult:
    __test__ = False

    suite_path: Tuple[str, ...]
    state_name: str
    browser_id: str
    reference_path: Optional[Path] = None
    current_path: Optional[Path] = None
    diff_path: Optional[Path] = None
    report: Any = None

    @classmethod
    def from_report(cls, report: Any) -> "TestResult":
        """Flatten an engine outcome into the fields the review server keeps."""
        reference = getattr(report, "reference_path", None)
        current = getattr(report, "current_path", None)
        return cls(
            suite_path=tuple(report.suite.path),
            state_name=report.state.name,
            browser_id=report.browser_id,
            reference_path=Path(reference) if reference else None,
            current_path=Path(current) if current else None,
            report=report,
        )


def result_key(test: Any) -> TestKey:
    """Build the lookup key from plain values, never from object identity.

    Accepts flattened results (``suite_path``/``state_name``) as well as engine
    reports and viewer descriptors (``suite.path``/``state.name``).
    """
    if hasattr(test, "suite_path"):
        suite_path = test.suite_path
        state_name = test.state_name
    else:
        suite_path = test.suite.path
        state_name = test.state.name
    return tuple(str(part) for part in suite_path), str(state_name), str(test.browser_id)


class FailedTestIndex:
    """Latest failure per (suite path, state name, browser id)."""

    def __init__(self) -> None:
        self._items: Dict[TestKey, TestResult] = {}
        self._lock = threading.Lock()

    def add(self, test: TestResult) -> None:
        key = result_key(test)
        with self._lock:
            self._items[key] = test

    def find(self, descriptor: Any) -> Optional[TestResult]:
        try:
            key = result_key(descriptor)
        except AttributeError:
            return None
        with self._lock:
            return self._items.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, descriptor: Any) -> bool:
        return self.find(descriptor) is not None
