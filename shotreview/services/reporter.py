from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any, Dict, Optional

from shotreview.schemas import ClientEvent, MessagePayload, StateRef, SuiteRef, TestPayload
from shotreview.services.engine import Reporter
from shotreview.services.failed_index import TestResult

if TYPE_CHECKING:  # pragma: no cover
    from shotreview.services.review_app import ReviewApp

LOGGER = logging.getLogger("shotreview.reporter")


def _suite_ref(suite: Any) -> SuiteRef:
    return SuiteRef(path=[str(part) for part in suite.path], name=getattr(suite, "name", None))


def _label(report: Any) -> str:
    suite = getattr(report, "suite", None)
    state = getattr(report, "state", None)
    parts = []
    if suite is not None:
        parts.append(" ".join(str(part) for part in suite.path))
    if state is not None:
        parts.append(state.name)
    browser_id = getattr(report, "browser_id", None)
    if browser_id:
        parts.append(f"[{browser_id}]")
    return " ".join(parts) or "<run>"


def describe(report: Any, **extra: Any) -> Dict[str, Any]:
    """Serialize an engine outcome into the JSON shape viewers receive."""
    payload = TestPayload(
        suite=_suite_ref(report.suite),
        state=StateRef(name=report.state.name),
        browser_id=report.browser_id,
        **extra,
    )
    return payload.model_dump(mode="json")


def describe_message(report: Any) -> Dict[str, Any]:
    if isinstance(report, BaseException):
        message = str(report) or report.__class__.__name__
        stack: Optional[str] = "".join(
            traceback.format_exception(type(report), report, report.__traceback__)
        )
    else:
        message = str(getattr(report, "message", report))
        stack = getattr(report, "stack", None)
    suite = getattr(report, "suite", None)
    state = getattr(report, "state", None)
    payload = MessagePayload(
        message=message,
        stack=stack,
        suite=_suite_ref(suite) if suite is not None else None,
        state=StateRef(name=state.name) if state is not None else None,
        browser_id=getattr(report, "browser_id", None),
    )
    return payload.model_dump(mode="json")


class ClientReporter(Reporter):
    """Turn engine outcomes into viewer events and record failures."""

    def __init__(self, app: "ReviewApp") -> None:
        self._app = app

    def on_begin_state(self, report: Any) -> None:
        self._app.send_client_event(ClientEvent.begin_state.value, describe(report))

    def on_test_result(self, report: Any) -> None:
        paths = self._app.paths
        if report.equal:
            payload = describe(
                report,
                equal=True,
                reference_url=paths.ref_url(report.reference_path, report.browser_id),
                current_url=paths.current_url(report.current_path),
            )
            self._app.send_client_event(ClientEvent.test_end.value, payload)
            return

        test = TestResult.from_report(report)
        test.diff_path = self._app.build_diff_file(report)
        payload = describe(
            report,
            equal=False,
            reference_url=paths.ref_url(report.reference_path, report.browser_id),
            current_url=paths.current_url(report.current_path),
            diff_url=paths.diff_url(test.diff_path),
        )
        self._app.record_failure(test, ClientEvent.test_fail.value, payload)

    def on_no_reference(self, report: Any) -> None:
        test = TestResult.from_report(report)
        payload = describe(report, current_url=self._app.paths.current_url(report.current_path))
        self._app.record_failure(test, ClientEvent.no_reference.value, payload, no_reference=True)

    def on_skip_state(self, report: Any) -> None:
        self._app.send_client_event(ClientEvent.skip_state.value, describe(report))

    def on_warning(self, report: Any) -> None:
        self._app.send_client_event(ClientEvent.warning.value, describe_message(report))

    def on_error(self, report: Any) -> None:
        self._app.send_client_event(ClientEvent.error.value, describe_message(report))

    def on_end(self) -> None:
        self._app.send_client_event(ClientEvent.end.value, {})


class LogReporter(Reporter):
    """One log line per outcome for whoever watches the server console."""

    def on_test_result(self, report: Any) -> None:
        if report.equal:
            LOGGER.info("PASS %s", _label(report))
        else:
            LOGGER.warning("FAIL %s", _label(report))

    def on_no_reference(self, report: Any) -> None:
        LOGGER.warning("NO REFERENCE %s", _label(report))

    def on_skip_state(self, report: Any) -> None:
        LOGGER.info("SKIP %s", _label(report))

    def on_warning(self, report: Any) -> None:
        LOGGER.warning("%s: %s", _label(report), getattr(report, "message", report))

    def on_error(self, report: Any) -> None:
        LOGGER.error("%s: %s", _label(report), getattr(report, "message", report))

    def on_end(self) -> None:
        LOGGER.info("Run finished")
