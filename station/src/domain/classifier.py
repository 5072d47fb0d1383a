"""Batch averaging and filtration bracket selection.

Pure functions only; the session decides when a batch is ready.
"""

from datetime import datetime
from typing import Callable, NamedTuple, Sequence

from domain.errors import EmptyBatch
from domain.models import BatchAverage, PredictionResult, SensorReading

# Reuse band used only for the explanation text; brackets ignore pH.
PH_MIN = 6.5
PH_MAX = 8.5

REUSABLE_BRACKETS = {"F1", "F2"}


class FiltrationRule(NamedTuple):
    bracket: str
    matches: Callable[[float, float], bool]  # (turbidity, tds)
    method: str


# Evaluated top to bottom, first match wins. F4 is the only inclusive floor.
FILTRATION_RULES = (
    FiltrationRule("F5", lambda turbidity, tds: tds > 1500, "Reverse Osmosis (RO)"),
    FiltrationRule("F4", lambda turbidity, tds: tds >= 1000, "Ultrafiltration + Activated Carbon"),
    FiltrationRule("F3", lambda turbidity, tds: turbidity > 30, "Coagulation + Sand Filtration"),
    FiltrationRule("F2", lambda turbidity, tds: turbidity > 10, "Sand + Carbon + Cloth Filtration"),
    FiltrationRule("F1", lambda turbidity, tds: True, "Sediment + Carbon Polishing"),
)


class Classification(NamedTuple):
    bracket: str
    method: str
    reusable: bool
    suggested_tank: str


def average(batch: Sequence[SensorReading]) -> BatchAverage:
    if not batch:
        raise EmptyBatch()
    # Divide before summing so large finite readings cannot overflow to inf.
    n = len(batch)
    return BatchAverage(
        ph=round(sum(r.ph / n for r in batch), 2),
        turbidity=round(sum(r.turbidity / n for r in batch), 2),
        tds=round(sum(r.tds / n for r in batch)),
    )


def classify(avg_turbidity: float, avg_tds: float) -> Classification:
    for rule in FILTRATION_RULES:
        if rule.matches(avg_turbidity, avg_tds):
            reusable = rule.bracket in REUSABLE_BRACKETS
            return Classification(
                bracket=rule.bracket,
                method=rule.method,
                reusable=reusable,
                suggested_tank="A" if reusable else "B",
            )
    # The F1 rule is a catch-all, so this only triggers on NaN input.
    raise ValueError(f"No filtration rule matched turbidity={avg_turbidity} tds={avg_tds}")


def explain(avg: BatchAverage, reusable: bool) -> str:
    if reusable:
        text = "Averaged water quality parameters fall within acceptable reuse limits."
    else:
        text = "Water exceeds reuse thresholds and requires treatment."
    if avg.ph < PH_MIN or avg.ph > PH_MAX:
        text += " pH correction is recommended."
    return text


def decide(batch: Sequence[SensorReading], now: datetime) -> PredictionResult:
    avg = average(batch)
    result = classify(avg.turbidity, avg.tds)
    return PredictionResult(
        bracket=result.bracket,
        reusable=result.reusable,
        suggested_tank=result.suggested_tank,
        filtration_method=result.method,
        decided_at=now,
        average=avg,
        explanation=explain(avg, result.reusable),
    )
