"""Request, result and change-log models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """Kind of file change recorded in the session history."""

    CREATED = "created"
    MODIFIED = "modified"
    UPDATED = "updated"


class ModificationChange(BaseModel):
    """A single history entry. Never edited after creation."""

    model_config = ConfigDict(frozen=True)

    type: ChangeType
    file: str
    description: str
    timestamp: datetime = Field(default_factory=datetime.now)
    approach: str
    success: bool = True
    reasoning: str = ""
    diff: str = ""  # unified diff, empty for failures and new files


class UsageStats(BaseModel):
    """Token usage accumulated across synthesis calls."""

    model_config = ConfigDict(frozen=False)

    api_calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, input_tokens: int, output_tokens: int) -> None:
        self.api_calls += 1
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ExecutorResult(BaseModel):
    """Outcome of one strategy executor run."""

    model_config = ConfigDict(frozen=False)

    strategy: str
    success: bool
    files_modified: list[str] = Field(default_factory=list)
    files_added: list[str] = Field(default_factory=list)
    changes: list[ModificationChange] = Field(default_factory=list)
    reasoning: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class AttemptRecord(BaseModel):
    """One strategy attempt made while processing a request."""

    model_config = ConfigDict(frozen=False)

    strategy: str
    success: bool
    reasoning: str = ""
    error: Optional[str] = None


class ModificationRequest(BaseModel):
    """Input contract of the orchestrator."""

    model_config = ConfigDict(frozen=False)

    request: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    build_directory: str
    project_description: Optional[str] = None
    project_id: Optional[str] = None


class ModificationResult(BaseModel):
    """Output contract of the orchestrator."""

    model_config = ConfigDict(frozen=False)

    success: bool
    approach: str
    files_modified: list[str] = Field(default_factory=list)
    files_added: list[str] = Field(default_factory=list)
    reasoning: str = ""
    error: Optional[str] = None
    classified_scope: Optional[str] = None
    attempts: list[AttemptRecord] = Field(default_factory=list)
    transitions: list[str] = Field(default_factory=list)
    modification_summary: str = ""
    usage: UsageStats = Field(default_factory=UsageStats)

    def to_response(self) -> dict[str, Any]:
        """Return the camelCase response payload."""
        payload: dict[str, Any] = {
            "success": self.success,
            "approach": self.approach,
            "filesModified": list(self.files_modified),
            "filesAdded": list(self.files_added),
            "reasoning": self.reasoning,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload
