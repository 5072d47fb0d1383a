from enum import Enum
from typing import Optional

from domain.models import PumpCommand


class SlotState(str, Enum):
    EMPTY = "EMPTY"
    QUEUED = "QUEUED"
    DELIVERED = "DELIVERED"


class CommandMailbox:
    """Single-slot mailbox handing each queued command out exactly once.

    Not thread-safe on its own; callers hold the controller lock.
    """

    def __init__(self) -> None:
        self._command: Optional[PumpCommand] = None
        self._state = SlotState.EMPTY

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def pending(self) -> Optional[PumpCommand]:
        return self._command

    @property
    def delivered(self) -> bool:
        return self._state is SlotState.DELIVERED

    def put(self, command: PumpCommand) -> None:
        self._command = command
        self._state = SlotState.QUEUED

    def take(self) -> Optional[PumpCommand]:
        if self._state is not SlotState.QUEUED:
            return None
        self._state = SlotState.DELIVERED
        return self._command

    def clear(self) -> None:
        self._command = None
        self._state = SlotState.EMPTY
