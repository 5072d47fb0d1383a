from datetime import datetime, timezone

from domain.models import SensorReading

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_reading(ph=7.0, turbidity=5.0, tds=300.0) -> SensorReading:
    return SensorReading(ph=ph, turbidity=turbidity, tds=tds, captured_at=FIXED_NOW)
