from pathlib import Path
from typing import Any

from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _suite_title(value: Any) -> str:
    if not value:
        return "—"
    if isinstance(value, (list, tuple)):
        return " / ".join(str(part) for part in value)
    return str(value)


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    {
        "len": len,
    }
)
templates.env.filters["suite_title"] = _suite_title
