"""Shared engine stubs and fixtures."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

from shotreview.config import ReviewSettings
from shotreview.services.review_app import ReviewApp


def write_png(path: Path, size: Tuple[int, int] = (40, 30), color: Tuple[int, int, int] = (200, 30, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


class StubState:
    def __init__(self, name: str) -> None:
        self.name = name


class StubSuite:
    def __init__(
        self,
        path: Sequence[str],
        states: Sequence[str] = ("plain",),
        browsers: Sequence[str] = ("chrome", "firefox"),
        children: Sequence["StubSuite"] = (),
    ) -> None:
        self.path = list(path)
        self.name = self.path[-1]
        self.states = [StubState(name) for name in states]
        self.browsers = list(browsers)
        self.children = list(children)


class StubCollection:
    def __init__(self, suites: Sequence[StubSuite]) -> None:
        self._suites = list(suites)
        self.enabled: Optional[List[Tuple[Tuple[str, ...], Optional[str], Optional[str]]]] = None

    def top_level_suites(self) -> List[StubSuite]:
        return list(self._suites)

    def all_suites(self) -> List[StubSuite]:
        found: List[StubSuite] = []
        pending = list(self._suites)
        while pending:
            suite = pending.pop(0)
            found.append(suite)
            pending.extend(suite.children)
        return found

    def enable_all(self) -> None:
        self.enabled = None

    def disable_all(self) -> None:
        self.enabled = []

    def enable(self, suite: StubSuite, state: Optional[str] = None, browser: Optional[str] = None) -> None:
        if self.enabled is None:
            self.enabled = []
        self.enabled.append((tuple(suite.path), state, browser))


class StubReport:
    def __init__(
        self,
        suite: StubSuite,
        state: str,
        browser_id: str,
        *,
        reference_path: Optional[Path] = None,
        current_path: Optional[Path] = None,
        equal: bool = False,
    ) -> None:
        self.suite = suite
        self.state = StubState(state)
        self.browser_id = browser_id
        self.reference_path = reference_path
        self.current_path = current_path
        self.equal = equal
        self.diff_targets: List[Path] = []

    def save_diff_to(self, path: Path) -> None:
        self.diff_targets.append(Path(path))
        write_png(Path(path), color=(255, 193, 7))


class StubEngine:
    def __init__(self, root: Path, browser_ids: Sequence[str] = ("chrome", "firefox")) -> None:
        self.root = root
        self.browser_ids = list(browser_ids)
        self.collection = StubCollection([StubSuite(["main"], children=[StubSuite(["main", "header"])])])
        self.read_calls: List[Tuple[List[str], Optional[str]]] = []
        self.test_calls: List[Tuple[Any, List[Any]]] = []
        self.outcomes: List[Tuple[str, Any]] = []
        self.temp_dir: Optional[Path] = None

    def reference_dir(self, browser_id: str) -> Path:
        return self.root / "references" / browser_id

    def set_temp_dir(self, path: Path) -> None:
        self.temp_dir = path

    def read_tests(self, files: Sequence[str], grep: Optional[str]) -> StubCollection:
        self.read_calls.append((list(files), grep))
        return self.collection

    def test(self, collection: StubCollection, reporters: Sequence[Any]) -> None:
        self.test_calls.append((collection, list(reporters)))
        for hook, report in self.outcomes:
            for reporter in reporters:
                if hook == "on_end":
                    reporter.on_end()
                else:
                    getattr(reporter, hook)(report)

    def get_screenshot_path(self, suite: Any, state_name: str, browser_id: str) -> Path:
        path = suite.path if hasattr(suite, "path") else suite
        return self.reference_dir(browser_id).joinpath(*path) / f"{state_name}.png"

    def get_browser_capabilities(self, browser_id: str) -> Dict[str, Any]:
        return {"browserName": browser_id}


class CopyOptimizer:
    """Stands in for optipng: copies the capture and records what it saw."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []

    def compress(self, source: Path, destination: Path) -> None:
        self.calls.append(
            {"source": source, "destination": destination, "destination_existed": destination.exists()}
        )
        shutil.copyfile(source, destination)


@pytest.fixture
def engine(tmp_path: Path) -> StubEngine:
    return StubEngine(tmp_path)


@pytest.fixture
def settings(tmp_path: Path) -> ReviewSettings:
    return ReviewSettings(engine="stub:Engine", temp_root=tmp_path / "tmp")


@pytest.fixture
def optimizer() -> CopyOptimizer:
    return CopyOptimizer()


@pytest.fixture
def review_app(settings: ReviewSettings, engine: StubEngine, optimizer: CopyOptimizer) -> ReviewApp:
    settings.temp_root.mkdir(parents=True, exist_ok=True)
    return ReviewApp(settings, engine=engine, optimizer=optimizer)


@pytest.fixture
def ready_app(review_app: ReviewApp) -> ReviewApp:
    review_app.initialize()
    return review_app
