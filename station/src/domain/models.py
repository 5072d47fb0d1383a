from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Phase(str, Enum):
    IDLE = "IDLE"
    COLLECTING = "COLLECTING"
    ANALYZED = "ANALYZED"
    TRANSFERRING_MAIN = "TRANSFERRING_MAIN"
    POST_FILTRATION = "POST_FILTRATION"
    COMPLETE = "COMPLETE"  # kept for clients; acknowledgement returns to IDLE


class PumpCommand(str, Enum):
    START_PUMP_A = "START_PUMP_A"
    START_PUMP_B = "START_PUMP_B"
    START_PUMP_C = "START_PUMP_C"
    STOP_ALL = "STOP_ALL"


@dataclass(frozen=True)
class SensorReading:
    ph: float
    turbidity: float  # NTU
    tds: float  # ppm
    captured_at: datetime

    def as_dict(self) -> dict:
        return {
            "ph": self.ph,
            "turbidity": self.turbidity,
            "tds": self.tds,
            "capturedAt": self.captured_at.isoformat(),
        }


@dataclass(frozen=True)
class BatchAverage:
    ph: float
    turbidity: float
    tds: int

    def as_dict(self) -> dict:
        return {"ph": self.ph, "turbidity": self.turbidity, "tds": self.tds}


@dataclass(frozen=True)
class PredictionResult:
    bracket: str  # F1..F5
    reusable: bool
    suggested_tank: str  # "A" or "B"
    filtration_method: str
    decided_at: datetime
    average: Optional[BatchAverage] = None
    explanation: str = ""

    def as_dict(self) -> dict:
        return {
            "bracket": self.bracket,
            "reusable": self.reusable,
            "suggestedTank": self.suggested_tank,
            "filtrationMethod": self.filtration_method,
            "decidedAt": self.decided_at.isoformat(),
            "average": self.average.as_dict() if self.average else None,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class IngestOutcome:
    accepted: bool
    reason: Optional[str]
    collected: int
    phase: Phase
