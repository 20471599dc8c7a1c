from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class RunState(str, Enum):
    uninitialized = "uninitialized"
    initializing = "initializing"
    ready = "ready"
    running = "running"
    terminated = "terminated"


class ClientEvent(str, Enum):
    begin_state = "begin-state"
    test_end = "test-end"
    test_fail = "test-fail"
    no_reference = "no-reference"
    skip_state = "skip-state"
    warning = "warning"
    error = "error"
    end = "end"


class SuiteRef(BaseModel):
    path: List[str]
    name: Optional[str] = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("Suite path must contain at least one name.")
        return value


class StateRef(BaseModel):
    name: str


class TestDescriptor(BaseModel):
    """Serializable identity of one screenshot test as the viewer sends it back."""

    __test__ = False

    suite: SuiteRef
    state: StateRef
    browser_id: str = Field(..., min_length=1)

    @property
    def suite_path(self) -> tuple:
        return tuple(self.suite.path)

    @property
    def state_name(self) -> str:
        return self.state.name


class TestPayload(TestDescriptor):
    reference_url: Optional[str] = None
    current_url: Optional[str] = None
    diff_url: Optional[str] = None
    equal: Optional[bool] = None


class MessagePayload(BaseModel):
    message: str
    stack: Optional[str] = None
    suite: Optional[SuiteRef] = None
    state: Optional[StateRef] = None
    browser_id: Optional[str] = None


class AcceptResponse(BaseModel):
    reference_url: str


class RunRequest(BaseModel):
    tests: Optional[List[TestDescriptor]] = None


class RunResponse(BaseModel):
    status: str
    state: RunState


class TestsResponse(BaseModel):
    state: RunState
    suites: List[Dict[str, Any]]
