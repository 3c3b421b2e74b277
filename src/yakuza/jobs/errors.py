"""Error taxonomy for job construction, planning and block production."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class YakuzaError(Exception):
    """Base job runtime error."""

    message: str
    code: str = "yakuza_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class InvalidArgumentError(YakuzaError, ValueError):
    """Caller passed a value of the wrong shape; the job is left unmodified."""

    code: str = "invalid_argument"


@dataclass(slots=True)
class UnknownTaskError(YakuzaError):
    """Plan references a task id the agent has no definition for."""

    code: str = "unknown_task"
    task_id: str = ""
    agent_id: str = ""


@dataclass(slots=True)
class PlanExhaustedError(YakuzaError):
    """Next block requested after the last effective plan group."""

    code: str = "plan_exhausted"


@dataclass(slots=True)
class JobStateError(YakuzaError):
    """Operation is not valid in the job's current lifecycle state."""

    code: str = "invalid_state"
