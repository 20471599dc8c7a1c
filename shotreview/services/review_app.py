from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from fastapi import Depends

from shotreview.config import ReviewSettings
from shotreview.errors import ShotReviewError
from shotreview.schemas import ClientEvent, RunState
from shotreview.services.engine import load_engine
from shotreview.services.events import Connection, EventChannel
from shotreview.services.failed_index import FailedTestIndex, TestResult
from shotreview.services.paths import PathMapper
from shotreview.services.references import OptiPNG, ReferenceUpdater
from shotreview.services.reporter import ClientReporter, LogReporter, describe_message
from shotreview.services.runner import create_runner
from shotreview.services.tests_tree import build_tests_tree, existing_reference
from shotreview.services.workspace import TempWorkspace

LOGGER = logging.getLogger("shotreview.app")


def filter_browsers(browsers: Sequence[str], selected: Sequence[str]) -> List[str]:
    wanted = set(selected)
    return [browser_id for browser_id in browsers if browser_id in wanted]


def check_unknown_browsers(known: Sequence[str], selected: Optional[Sequence[str]]) -> List[str]:
    if not selected:
        return []
    known_set = set(known)
    unknown = [browser_id for browser_id in selected if browser_id not in known_set]
    if unknown:
        LOGGER.warning(
            "Unknown browser ids: %s. Use one of the browser ids specified in the config file: %s",
            ", ".join(unknown),
            ", ".join(known),
        )
    return unknown


class ReviewApp:
    """Own the staging workspace, the loaded tests and the accept workflow."""

    def __init__(
        self,
        settings: ReviewSettings,
        engine: Optional[Any] = None,
        *,
        workspace: Optional[TempWorkspace] = None,
        optimizer: Optional[OptiPNG] = None,
    ) -> None:
        self._settings = settings
        self._state = RunState.uninitialized
        self._workspace = workspace or TempWorkspace(settings.temp_root)
        self._failed_tests = FailedTestIndex()
        self._events = EventChannel()
        self._outcome_lock = threading.Lock()
        self._collection: Optional[Any] = None
        self._tests: List[Dict[str, Any]] = []

        if engine is None:
            engine_cls = load_engine(settings.engine)
            engine = engine_cls(settings.config_file)
        self._engine = engine
        self._engine.set_temp_dir(self.current_dir)

        browser_ids = list(self._engine.browser_ids)
        check_unknown_browsers(browser_ids, settings.browsers)
        self.reference_dirs: Dict[str, Path] = {
            browser_id: Path(self._engine.reference_dir(browser_id)) for browser_id in browser_ids
        }
        self._paths = PathMapper(self.reference_dirs, self.current_dir, self.diff_dir)
        self._references = ReferenceUpdater(
            self._failed_tests,
            self._paths,
            optimizer or OptiPNG(settings.optipng_bin),
        )

    @property
    def settings(self) -> ReviewSettings:
        return self._settings

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunState.running

    @property
    def current_dir(self) -> Path:
        return self._workspace.current_dir

    @property
    def diff_dir(self) -> Path:
        return self._workspace.diff_dir

    @property
    def paths(self) -> PathMapper:
        return self._paths

    @property
    def failed_tests(self) -> FailedTestIndex:
        return self._failed_tests

    @property
    def events(self) -> EventChannel:
        return self._events

    def initialize(self) -> None:
        if self._state is not RunState.uninitialized:
            raise ShotReviewError(f"Cannot initialize from state {self._state.value}")
        self._state = RunState.initializing
        try:
            self._workspace.recreate()
            self._read_tests()
        except Exception:
            self._state = RunState.uninitialized
            raise
        self._state = RunState.ready
        LOGGER.info("Loaded %s top-level suites", len(self._tests))

    def _read_tests(self) -> None:
        collection = self._engine.read_tests(self._settings.test_files, self._settings.grep)
        suites = collection.top_level_suites()
        if self._settings.browsers:
            for suite in suites:
                suite.browsers = filter_browsers(suite.browsers, self._settings.browsers)
        self._collection = collection
        lookup = existing_reference(self.get_screenshot_path, self._paths.ref_url)
        self._tests = build_tests_tree(suites, lookup)

    def get_tests(self) -> List[Dict[str, Any]]:
        return self._tests

    def add_client(self, connection: Connection) -> None:
        self._events.add_connection(connection)

    def remove_client(self, connection: Connection) -> None:
        self._events.remove_connection(connection)

    def send_client_event(self, event: str, data: Any = None) -> None:
        self._events.emit(event, data)

    def _ensure_loaded(self) -> None:
        if self._collection is None:
            raise ShotReviewError("Tests are not loaded; call initialize() first")

    def run(self, specific_tests: Optional[Sequence[Any]] = None) -> Any:
        self._ensure_loaded()
        self._state = RunState.running
        try:
            LOGGER.info(
                "Starting run over %s",
                f"{len(specific_tests)} selected tests" if specific_tests else "all suites",
            )
            runner = create_runner(self._collection, specific_tests)
            return runner.run(
                lambda collection: self._engine.test(
                    collection, reporters=[ClientReporter(self), LogReporter()]
                )
            )
        finally:
            if self._state is RunState.running:
                self._state = RunState.ready

    def run_in_background(self, specific_tests: Optional[Sequence[Any]] = None) -> threading.Thread:
        self._ensure_loaded()
        self._state = RunState.running
        thread = threading.Thread(
            target=self._run_safely,
            args=(specific_tests,),
            name="shotreview-run",
            daemon=True,
        )
        thread.start()
        return thread

    def _run_safely(self, specific_tests: Optional[Sequence[Any]]) -> None:
        try:
            self.run(specific_tests)
        except Exception as exc:
            LOGGER.exception("Run failed")
            self.send_client_event(ClientEvent.error.value, describe_message(exc))

    def record_failure(
        self,
        test: TestResult,
        event: str,
        payload: Dict[str, Any],
        *,
        no_reference: bool = False,
    ) -> None:
        with self._outcome_lock:
            if no_reference:
                self.add_no_reference_test(test)
            else:
                self.add_failed_test(test)
            self.send_client_event(event, payload)

    def add_no_reference_test(self, test: TestResult) -> None:
        # the viewer only knows the suite path, so the reference path is resolved here
        suite = getattr(test.report, "suite", None) or test.suite_path
        test.reference_path = Path(self.get_screenshot_path(suite, test.state_name, test.browser_id))
        self.add_failed_test(test)

    def add_failed_test(self, test: TestResult) -> None:
        self._failed_tests.add(test)

    def build_diff_file(self, report: Any) -> Path:
        diff_path = self.diff_dir / f"{uuid.uuid4().hex}.png"
        report.save_diff_to(diff_path)
        return diff_path

    def build_diff(self, report: Any) -> str:
        return self._paths.diff_url(self.build_diff_file(report))

    def update_reference_image(self, descriptor: Any) -> str:
        return self._references.update_reference(descriptor)

    def get_screenshot_path(self, suite: Any, state_name: str, browser_id: str) -> Path:
        return self._engine.get_screenshot_path(suite, state_name, browser_id)

    def get_browser_capabilities(self, browser_id: str) -> Dict[str, Any]:
        return self._engine.get_browser_capabilities(browser_id)

    def close(self) -> None:
        self._workspace.remove()
        self._state = RunState.terminated


_review_app: Optional[ReviewApp] = None


def set_review_app(app: Optional[ReviewApp]) -> None:
    global _review_app
    _review_app = app


def get_review_app() -> ReviewApp:
    """FastAPI dependency returning the app the CLI configured."""
    if _review_app is None:
        raise RuntimeError("Review app is not configured")
    return _review_app


ReviewAppDep = Depends(get_review_app)
