"""State definition for the LangGraph modification pipeline."""

import operator
from typing import Annotated, Any, Optional, TypedDict

from intelligent_modifier.models import AttemptRecord, ExecutorResult, ProjectStructureMap
from intelligent_modifier.utils.cancellation import CancellationToken

PHASE_INIT = "INIT"
PHASE_CACHE_READY = "CACHE_READY"
PHASE_CLASSIFIED = "CLASSIFIED"
PHASE_EXECUTING = "EXECUTING"
PHASE_DONE = "DONE"


def executing_phase(strategy: str) -> str:
    return f"{PHASE_EXECUTING}:{strategy}"


class ModificationState(TypedDict):
    """State for one modification request.

    Fields with Annotated[list, operator.add] reducers accumulate across nodes.
    All other fields use default overwrite semantics.
    """

    # Input
    request: str
    session_id: str
    build_directory: str
    project_description: Optional[str]
    project_id: Optional[str]
    cancel_token: Optional[CancellationToken]

    # Context
    phase: str
    message_number: int
    files_available: bool
    structure: Optional[ProjectStructureMap]
    project_summary: str
    history_summary: str

    # Classification
    scope: Optional[Any]  # ModificationScope variant
    classified_scope: Optional[str]

    # Execution
    pending_strategy: Optional[str]
    attempted: list[str]
    previous_failed: bool
    last_error: Optional[str]
    last_result: Optional[ExecutorResult]

    # Accumulating logs
    attempts: Annotated[list[AttemptRecord], operator.add]
    transitions: Annotated[list[str], operator.add]
    errors: Annotated[list[str], operator.add]


def make_initial_state(
    request: str,
    session_id: str,
    build_directory: str,
    project_description: Optional[str] = None,
    project_id: Optional[str] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> ModificationState:
    """Create the initial state for one request.

    Returns:
        ModificationState dict with all fields initialised to defaults.
    """
    return {
        "request": request,
        "session_id": session_id,
        "build_directory": build_directory,
        "project_description": project_description,
        "project_id": project_id,
        "cancel_token": cancel_token,
        "phase": PHASE_INIT,
        "message_number": 0,
        "files_available": False,
        "structure": None,
        "project_summary": "",
        "history_summary": "",
        "scope": None,
        "classified_scope": None,
        "pending_strategy": None,
        "attempted": [],
        "previous_failed": False,
        "last_error": None,
        "last_result": None,
        "attempts": [],
        "transitions": [],
        "errors": [],
    }
