from datetime import datetime
from typing import Optional, Union

from domain import classifier
from domain.errors import InsufficientData, InvalidCommand, InvalidPhase, NotFound
from domain.mailbox import CommandMailbox
from domain.models import IngestOutcome, Phase, PredictionResult, PumpCommand, SensorReading

REJECT_NOT_COLLECTING = "not collecting"
REJECT_BATCH_FULL = "batch already full"

# Phase entered when a start command is queued from ANALYZED.
COMMAND_PHASES = {
    PumpCommand.START_PUMP_A: Phase.TRANSFERRING_MAIN,
    PumpCommand.START_PUMP_B: Phase.TRANSFERRING_MAIN,
    PumpCommand.START_PUMP_C: Phase.POST_FILTRATION,
}


def parse_command(command: Union[str, PumpCommand]) -> PumpCommand:
    if isinstance(command, PumpCommand):
        return command
    try:
        return PumpCommand(command)
    except ValueError:
        raise InvalidCommand(command) from None


class WaterSession:
    """Phase state machine for the single reuse session.

    Every change to phase, batch, prediction and pending command goes through
    the methods below. Not thread-safe; StationController serializes calls.
    """

    def __init__(self, batch_size: int = 10) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self.phase = Phase.IDLE
        self.active = False
        self.completed = False
        self.started_at: Optional[datetime] = None
        self.rejected = 0
        self._batch: list[SensorReading] = []
        self._prediction: Optional[PredictionResult] = None
        self.mailbox = CommandMailbox()

    # ---------------------------------------------------
    # SESSION
    # ---------------------------------------------------
    def start(self, now: datetime) -> None:
        self._batch = []
        self._prediction = None
        self.mailbox.clear()
        self.active = True
        self.completed = False
        self.started_at = now
        self.rejected = 0
        self.phase = Phase.COLLECTING

    def reset(self) -> None:
        self._batch = []
        self._prediction = None
        self.mailbox.clear()
        self.active = False
        self.completed = False
        self.started_at = None
        self.rejected = 0
        self.phase = Phase.IDLE

    @property
    def collected(self) -> int:
        return len(self._batch)

    def status(self) -> dict:
        return {
            "active": self.active,
            "completed": self.completed,
            "collected": self.collected,
            "phase": self.phase.value,
        }

    def readings(self) -> dict:
        payload: dict = {"readings": [r.as_dict() for r in self._batch]}
        if self._batch:
            payload["average"] = classifier.average(self._batch).as_dict()
        return payload

    # ---------------------------------------------------
    # INGEST / ANALYZE
    # ---------------------------------------------------
    def ingest(self, reading: SensorReading) -> IngestOutcome:
        reason = None
        if self.phase is not Phase.COLLECTING:
            reason = REJECT_NOT_COLLECTING
        elif len(self._batch) >= self.batch_size:
            reason = REJECT_BATCH_FULL

        if reason is None:
            self._batch.append(reading)
        else:
            self.rejected += 1
        return IngestOutcome(
            accepted=reason is None,
            reason=reason,
            collected=len(self._batch),
            phase=self.phase,
        )

    def analyze(self, now: datetime) -> PredictionResult:
        if self.phase is not Phase.COLLECTING:
            raise InvalidPhase("analyze", self.phase.value, Phase.COLLECTING.value)
        if len(self._batch) != self.batch_size:
            raise InsufficientData(required=self.batch_size, current=len(self._batch))

        prediction = classifier.decide(self._batch, now)
        self._prediction = prediction
        self.completed = True
        self.active = False
        self.phase = Phase.ANALYZED
        return prediction

    @property
    def has_prediction(self) -> bool:
        return self._prediction is not None

    def latest_prediction(self) -> PredictionResult:
        if self._prediction is None:
            raise NotFound("No prediction available yet")
        return self._prediction

    # ---------------------------------------------------
    # PUMP COMMANDS
    # ---------------------------------------------------
    def queue_command(self, command: Union[str, PumpCommand]) -> PumpCommand:
        cmd = parse_command(command)
        if cmd is PumpCommand.STOP_ALL:
            # Safety override, accepted from any phase.
            next_phase = Phase.IDLE
            self.active = False
        elif self.phase is Phase.ANALYZED:
            next_phase = COMMAND_PHASES[cmd]
        else:
            raise InvalidPhase(f"queue {cmd.value}", self.phase.value, Phase.ANALYZED.value)

        self.mailbox.put(cmd)
        self.phase = next_phase
        return cmd

    def fetch_command(self) -> Optional[PumpCommand]:
        return self.mailbox.take()

    def acknowledge(self) -> Optional[PumpCommand]:
        previous = self.mailbox.pending
        self.mailbox.clear()
        self.active = False
        self.phase = Phase.IDLE
        return previous
