"""
Applicant pipeline model.

Stages, derived progress and the admin-triggered transitions of the
application -> test -> interview -> completed pipeline. All functions are
pure; persistence lives in api/services/applications.py.
"""

from dataclasses import dataclass, replace
from enum import Enum as PyEnum
from typing import Iterable, Optional

from core.exceptions import InvalidTransitionError


class Stage(str, PyEnum):
    """Ordered phases of the applicant pipeline."""

    APPLICATION = "application"
    TEST = "test"
    INTERVIEW = "interview"
    COMPLETED = "completed"


# Stages in which the online test has been made available
TEST_UNLOCKED_STAGES = frozenset({Stage.TEST, Stage.INTERVIEW, Stage.COMPLETED})

# Stages in which an interviewer may be assigned
INTERVIEWER_STAGES = frozenset({Stage.INTERVIEW, Stage.COMPLETED})

# Interviewers an application can be assigned to unless INTERVIEWERS overrides them
DEFAULT_INTERVIEWERS = [
    "Alex Chan",
    "Priya Nair",
    "Marcus Lee",
    "Sofia Wong",
]


@dataclass(frozen=True)
class PipelineState:
    """The mutable part of an application as seen by the pipeline."""

    stage: Stage = Stage.APPLICATION
    test_unlocked: bool = False
    assigned_interviewer: Optional[str] = None

    @property
    def progress(self) -> int:
        return calculate_progress(self.stage, self.test_unlocked)


def calculate_progress(stage: Stage | str, test_unlocked: bool) -> int:
    """
    Display percentage for a pipeline position.

    A test stage that was never unlocked reports 0.
    """
    stage = Stage(stage)
    if stage == Stage.COMPLETED:
        return 100
    if stage == Stage.INTERVIEW:
        return 90
    if stage == Stage.TEST and test_unlocked:
        return 66
    if stage == Stage.APPLICATION:
        return 33
    return 0


def validate_state(state: PipelineState) -> PipelineState:
    """Reject states that break the unlock and interviewer invariants."""
    if state.test_unlocked and state.stage not in TEST_UNLOCKED_STAGES:
        raise InvalidTransitionError(
            f"test cannot be unlocked at stage '{state.stage.value}'",
            current=state.stage.value,
        )
    if state.assigned_interviewer is not None and state.stage not in INTERVIEWER_STAGES:
        raise InvalidTransitionError(
            f"interviewer cannot be assigned at stage '{state.stage.value}'",
            current=state.stage.value,
        )
    return state


def unlock_test(state: PipelineState) -> PipelineState:
    """Unlock the online test and advance application -> test."""
    if state.stage != Stage.APPLICATION:
        raise InvalidTransitionError(
            f"Cannot unlock test from stage '{state.stage.value}'",
            current=state.stage.value,
            target=Stage.TEST.value,
        )
    return validate_state(replace(state, stage=Stage.TEST, test_unlocked=True))


def assign_interviewer(
    state: PipelineState,
    interviewer: str,
    roster: Iterable[str],
) -> PipelineState:
    """Assign an interviewer from the roster and advance test -> interview."""
    if state.stage != Stage.TEST:
        raise InvalidTransitionError(
            f"Cannot assign interviewer from stage '{state.stage.value}'",
            current=state.stage.value,
            target=Stage.INTERVIEW.value,
        )
    if interviewer not in set(roster):
        raise InvalidTransitionError(f"Unknown interviewer '{interviewer}'")
    return validate_state(
        replace(state, stage=Stage.INTERVIEW, assigned_interviewer=interviewer)
    )


def complete(state: PipelineState) -> PipelineState:
    """Mark an interviewed application as completed."""
    if state.stage != Stage.INTERVIEW:
        raise InvalidTransitionError(
            f"Cannot complete application from stage '{state.stage.value}'",
            current=state.stage.value,
            target=Stage.COMPLETED.value,
        )
    return validate_state(replace(state, stage=Stage.COMPLETED))
