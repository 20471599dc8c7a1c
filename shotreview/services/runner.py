from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

LOGGER = logging.getLogger("shotreview.runner")

RunHandler = Callable[[Any], Any]


class AllSuitesRunner:
    def __init__(self, collection: Any) -> None:
        self._collection = collection

    @property
    def collection(self) -> Any:
        return self._collection

    def run(self, handler: RunHandler) -> Any:
        self._collection.enable_all()
        return handler(self._collection)


class SpecificSuitesRunner(AllSuitesRunner):
    """Run only the requested (suite, state, browser) combinations."""

    def __init__(self, collection: Any, specific_tests: Sequence[Any]) -> None:
        super().__init__(collection)
        self._specific_tests = list(specific_tests)

    def run(self, handler: RunHandler) -> Any:
        self._filter()
        return handler(self._collection)

    def _filter(self) -> None:
        suites = {tuple(suite.path): suite for suite in self._collection.all_suites()}
        self._collection.disable_all()
        for test in self._specific_tests:
            suite = suites.get(tuple(test.suite.path))
            if suite is None:
                LOGGER.warning("Suite %s is not in the loaded collection; skipping", " ".join(test.suite.path))
                continue
            self._collection.enable(suite, state=test.state.name, browser=test.browser_id)


def create_runner(collection: Any, specific_tests: Optional[Sequence[Any]] = None) -> AllSuitesRunner:
    if specific_tests:
        return SpecificSuitesRunner(collection, specific_tests)
    return AllSuitesRunner(collection)
