"""
AI processing status state machine.

    pending -> processing -> completed
                          -> failed

Terminal states never move again; nothing ever goes back to pending.
"""
from enum import Enum
from typing import Dict, FrozenSet

from app.core.exceptions import InvalidStatusTransition


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


ALLOWED_TRANSITIONS: Dict[ProcessingStatus, FrozenSet[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset({ProcessingStatus.PROCESSING}),
    ProcessingStatus.PROCESSING: frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset(),
}


def can_transition(current: ProcessingStatus, target: ProcessingStatus) -> bool:
    return ProcessingStatus(target) in ALLOWED_TRANSITIONS[ProcessingStatus(current)]


def ensure_transition(current: ProcessingStatus, target: ProcessingStatus) -> ProcessingStatus:
    """Return the target status, or raise InvalidStatusTransition."""
    current = ProcessingStatus(current)
    target = ProcessingStatus(target)
    if not can_transition(current, target):
        raise InvalidStatusTransition(current.value, target.value)
    return target
