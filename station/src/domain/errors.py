"""Failures surfaced to HTTP callers. None of them are retried server-side."""

from typing import Optional


class StationError(Exception):
    code = "StationError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_detail(self) -> dict:
        return {"status": "ERROR", "error": self.code, "message": self.message}


class InvalidInput(StationError):
    code = "InvalidInput"


class InvalidCommand(InvalidInput):
    code = "InvalidCommand"

    def __init__(self, command: object) -> None:
        super().__init__(f"Unknown pump command '{command}'")
        self.command = command


class InvalidPhase(StationError):
    code = "InvalidPhase"

    def __init__(self, operation: str, phase: str, expected: Optional[str] = None) -> None:
        message = f"Cannot {operation} while phase is {phase}"
        if expected:
            message += f" (requires {expected})"
        super().__init__(message)
        self.operation = operation
        self.phase = phase
        self.expected = expected

    def as_detail(self) -> dict:
        return {**super().as_detail(), "phase": self.phase}


class InsufficientData(StationError):
    code = "InsufficientData"

    def __init__(self, required: int, current: int) -> None:
        super().__init__(f"Batch incomplete: {current}/{required} readings collected")
        self.required = required
        self.current = current

    def as_detail(self) -> dict:
        return {**super().as_detail(), "required": self.required, "current": self.current}


class NotFound(StationError):
    code = "NotFound"


class EmptyBatch(StationError):
    code = "EmptyBatch"

    def __init__(self) -> None:
        super().__init__("Cannot average an empty batch")
