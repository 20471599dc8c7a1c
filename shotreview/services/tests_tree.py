from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

ReferenceLookup = Callable[[Any, str, str], Optional[str]]


def _suite_node(suite: Any, reference_url: ReferenceLookup) -> Dict[str, Any]:
    browsers = list(getattr(suite, "browsers", []) or [])
    states: List[Dict[str, Any]] = []
    for state in getattr(suite, "states", []) or []:
        states.append(
            {
                "name": state.name,
                "browsers": [
                    {
                        "name": browser_id,
                        "result": {
                            "status": "idle",
                            "reference_url": reference_url(suite, state.name, browser_id),
                        },
                    }
                    for browser_id in browsers
                ],
            }
        )
    return {
        "name": suite.name,
        "path": [str(part) for part in suite.path],
        "browsers": browsers,
        "states": states,
        "children": [_suite_node(child, reference_url) for child in getattr(suite, "children", []) or []],
    }


def build_tests_tree(suites: Iterable[Any], reference_url: ReferenceLookup) -> List[Dict[str, Any]]:
    """Render the loaded suites for the viewer's first paint."""
    return [_suite_node(suite, reference_url) for suite in suites]


def existing_reference(
    screenshot_path: Callable[[Any, str, str], Path],
    ref_url: Callable[[Path, str], str],
) -> ReferenceLookup:
    def _lookup(suite: Any, state_name: str, browser_id: str) -> Optional[str]:
        path = Path(screenshot_path(suite, state_name, browser_id))
        if not path.is_file():
            return None
        return ref_url(path, browser_id)

    return _lookup
