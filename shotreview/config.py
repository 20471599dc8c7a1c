from __future__ import annotations

import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_OPTIPNG = "optipng"
DEFAULT_HOSTNAME = "localhost"
DEFAULT_PORT = 8000


class ReviewSettings(BaseModel):
    """Options the review server is started with."""

    config_file: Optional[Path] = None
    engine: str = ""
    test_files: List[str] = Field(default_factory=list)
    grep: Optional[str] = None
    browsers: Optional[List[str]] = None
    optipng_bin: str = DEFAULT_OPTIPNG
    temp_root: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    hostname: str = DEFAULT_HOSTNAME
    port: int = DEFAULT_PORT
    auto_run: bool = False
    open_browser: bool = False

    @field_validator("browsers")
    @classmethod
    def empty_selection_means_all(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if not value:
            return None
        return value

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("Port must be between 1 and 65535.")
        return value

    @property
    def base_url(self) -> str:
        return f"http://{self.hostname}:{self.port}"
