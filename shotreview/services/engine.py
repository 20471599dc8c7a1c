"""Contract of the external test engine.

The engine captures screenshots, compares them and drives browsers. The review
server only needs the narrow surface below; concrete engines do not have to
inherit from these classes as long as they provide the same attributes.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from shotreview.errors import EngineLoadError


class Reporter:
    """Receives per-test outcomes while ``TestEngine.test`` runs."""

    def on_begin_state(self, report: Any) -> None:
        pass

    def on_test_result(self, report: Any) -> None:
        pass

    def on_no_reference(self, report: Any) -> None:
        pass

    def on_skip_state(self, report: Any) -> None:
        pass

    def on_warning(self, report: Any) -> None:
        pass

    def on_error(self, report: Any) -> None:
        pass

    def on_end(self) -> None:
        pass


class TestCollection:
    def top_level_suites(self) -> List[Any]:  # pragma: no cover - interface stub
        raise NotImplementedError

    def all_suites(self) -> List[Any]:  # pragma: no cover - interface stub
        raise NotImplementedError

    def enable_all(self) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError

    def disable_all(self) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError

    def enable(self, suite: Any, state: Optional[str] = None, browser: Optional[str] = None) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError


class TestEngine:
    browser_ids: List[str]

    def __init__(self, config_path: Optional[Path] = None) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError

    def reference_dir(self, browser_id: str) -> Path:  # pragma: no cover - interface stub
        raise NotImplementedError

    def set_temp_dir(self, path: Path) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError

    def read_tests(self, files: Sequence[str], grep: Optional[str]) -> TestCollection:  # pragma: no cover - interface stub
        raise NotImplementedError

    def test(self, collection: TestCollection, reporters: Iterable[Reporter]) -> None:  # pragma: no cover - interface stub
        raise NotImplementedError

    def get_screenshot_path(self, suite: Any, state_name: str, browser_id: str) -> Path:  # pragma: no cover - interface stub
        raise NotImplementedError

    def get_browser_capabilities(self, browser_id: str) -> Dict[str, Any]:  # pragma: no cover - interface stub
        raise NotImplementedError


def load_engine(dotted_path: str) -> type:
    """Import an engine class from a ``package.module:ClassName`` string."""
    module_name, sep, attr = dotted_path.partition(":")
    if not module_name or not sep or not attr:
        raise EngineLoadError(f"Engine must be given as 'module:ClassName', got {dotted_path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineLoadError(f"Cannot import engine module {module_name!r}: {exc}") from exc
    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise EngineLoadError(f"Engine {attr!r} not found in {module_name!r}") from exc
    if not callable(target):
        raise EngineLoadError(f"Engine {dotted_path!r} is not callable")
    return target
