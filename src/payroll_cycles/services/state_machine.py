"""Payroll cycle state machine with transition validation."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from payroll_cycles.errors import IllegalTransitionError


class CycleStatus(str, Enum):
    """Payroll cycle status values."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CycleEvent(str, Enum):
    """Events that move a cycle between statuses."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    PROCESS = "process"
    AGE_OUT = "age_out"


class CycleStateMachine:
    """State machine for payroll cycle status transitions.

    Allowed transitions:
    - draft → pending_approval (submit, needs payroll items)
    - pending_approval → approved (approve)
    - pending_approval → draft (reject)
    - approved → processing (process, needs payroll items)
    - draft/pending_approval/approved/processing → completed (age_out)

    completed and failed are terminal.
    """

    INITIAL_STATUS = CycleStatus.DRAFT

    # {(from_status, event): to_status}
    TRANSITIONS: dict[tuple[str, str], CycleStatus] = {
        (CycleStatus.DRAFT, CycleEvent.SUBMIT): CycleStatus.PENDING_APPROVAL,
        (CycleStatus.PENDING_APPROVAL, CycleEvent.APPROVE): CycleStatus.APPROVED,
        (CycleStatus.PENDING_APPROVAL, CycleEvent.REJECT): CycleStatus.DRAFT,
        (CycleStatus.APPROVED, CycleEvent.PROCESS): CycleStatus.PROCESSING,
        (CycleStatus.DRAFT, CycleEvent.AGE_OUT): CycleStatus.COMPLETED,
        (CycleStatus.PENDING_APPROVAL, CycleEvent.AGE_OUT): CycleStatus.COMPLETED,
        (CycleStatus.APPROVED, CycleEvent.AGE_OUT): CycleStatus.COMPLETED,
        (CycleStatus.PROCESSING, CycleEvent.AGE_OUT): CycleStatus.COMPLETED,
    }

    # Events whose precondition is at least one payroll item
    ITEMS_REQUIRED = {CycleEvent.SUBMIT, CycleEvent.PROCESS}

    # Statuses where the orchestrator may insert/update payroll items
    ITEMS_MUTABLE = {
        CycleStatus.DRAFT,
        CycleStatus.PENDING_APPROVAL,
    }

    # Statuses where payroll items are frozen
    ITEMS_LOCKED = {
        CycleStatus.APPROVED,
        CycleStatus.PROCESSING,
        CycleStatus.COMPLETED,
    }

    TERMINAL = {
        CycleStatus.COMPLETED,
        CycleStatus.FAILED,
    }

    @classmethod
    def can_fire(cls, from_status: str, event: str) -> bool:
        """Check if an event is legal in a status."""
        return (from_status, event) in cls.TRANSITIONS

    @classmethod
    def validate(cls, from_status: str, event: str) -> str:
        """Validate an event, returning the target status value.

        Raises IllegalTransitionError if the event is not allowed.
        """
        target = cls.TRANSITIONS.get((from_status, event))
        if target is None:
            allowed = ", ".join(cls.get_available_events(from_status)) or "none"
            raise IllegalTransitionError(
                _value(from_status), _value(event), f"allowed events: {allowed}"
            )
        return target.value

    @classmethod
    def requires_items(cls, event: str) -> bool:
        return event in cls.ITEMS_REQUIRED

    @classmethod
    def can_modify_items(cls, status: str) -> bool:
        """Check if payroll items may be (re)computed in this status."""
        return status in cls.ITEMS_MUTABLE

    @classmethod
    def are_items_locked(cls, status: str) -> bool:
        return status in cls.ITEMS_LOCKED

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

    @classmethod
    def get_available_events(cls, status: str) -> list[str]:
        """Get list of events that are legal from a status."""
        return [
            event.value
            for (from_status, event) in cls.TRANSITIONS
            if from_status == status
        ]

    @classmethod
    def age_out_sources(cls) -> list[str]:
        """Statuses the age-out sweep moves to completed."""
        return [
            from_status.value
            for (from_status, event) in cls.TRANSITIONS
            if event == CycleEvent.AGE_OUT
        ]

    @classmethod
    def is_valid_path(cls, statuses: Iterable[str]) -> bool:
        """Check that an observed status sequence follows the transition table."""
        sequence = list(statuses)
        if not sequence or sequence[0] != cls.INITIAL_STATUS:
            return False
        reachable = {(f, t.value) for (f, _), t in cls.TRANSITIONS.items()}
        return all(
            (previous, current) in reachable
            for previous, current in zip(sequence, sequence[1:])
        )


def _value(member: str) -> str:
    """Plain string for a status/event given as an enum member or a string."""
    return member.value if isinstance(member, Enum) else member
