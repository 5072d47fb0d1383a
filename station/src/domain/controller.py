import asyncio
import json
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from domain.models import IngestOutcome, PredictionResult, PumpCommand, SensorReading
from domain.session import WaterSession
from infra.config import StationConfig


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StationController:
    def __init__(self, config: StationConfig, clock: Callable[[], datetime] = _utcnow):
        self.config = config
        self._clock = clock
        self.session = WaterSession(batch_size=config.session.batch_size)

        self._state_lock = threading.Lock()
        self._log_lock = threading.Lock()
        self._log_buffer: list[str] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._sse_subscribers: list[asyncio.Queue] = []

        self._log(f"Reuse station ready (batch size {config.session.batch_size}).")

    # ---------------------------------------------------
    # STATUS
    # ---------------------------------------------------
    def get_status(self) -> dict:
        with self._state_lock:
            return self._snapshot_unlocked()

    def session_status(self) -> dict:
        with self._state_lock:
            return self.session.status()

    def session_readings(self) -> dict:
        with self._state_lock:
            return self.session.readings()

    def latest_prediction(self) -> PredictionResult:
        with self._state_lock:
            return self.session.latest_prediction()

    def attach_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    # ---------------------------------------------------
    # SESSION
    # ---------------------------------------------------
    def start_session(self) -> int:
        with self._state_lock:
            self.session.start(self._clock())
            batch_size = self.session.batch_size
        self._log(f"[Session] Started, collecting {batch_size} readings")
        return batch_size

    def reset_session(self) -> None:
        with self._state_lock:
            self.session.reset()
        self._log("[Session] Reset")

    def ingest(self, ph: float, turbidity: float, tds: float) -> IngestOutcome:
        reading = SensorReading(ph=ph, turbidity=turbidity, tds=tds, captured_at=self._clock())
        with self._state_lock:
            outcome = self.session.ingest(reading)
        if outcome.accepted:
            self._log(
                f"[Ingest] {outcome.collected}/{self.session.batch_size} "
                f"pH={ph} turbidity={turbidity} tds={tds}"
            )
        else:
            self._append_log(f"[Ingest] Ignored ({outcome.reason})")
        return outcome

    def analyze(self) -> PredictionResult:
        with self._state_lock:
            prediction = self.session.analyze(self._clock())
        self._log(
            f"[Analyze] {prediction.bracket} -> Tank {prediction.suggested_tank} "
            f"({prediction.filtration_method})"
        )
        return prediction

    # ---------------------------------------------------
    # PUMP
    # ---------------------------------------------------
    def queue_command(self, command: str) -> dict:
        with self._state_lock:
            cmd = self.session.queue_command(command)
            phase = self.session.phase
        self._log(f"[Pump] Queued {cmd.value}, phase {phase.value}")
        return {"command": cmd.value, "phase": phase.value}

    def fetch_command(self) -> Optional[PumpCommand]:
        with self._state_lock:
            cmd = self.session.fetch_command()
        if cmd is not None:
            self._log(f"[Pump] Delivered {cmd.value}")
        return cmd

    def acknowledge_command(self) -> dict:
        with self._state_lock:
            previous = self.session.acknowledge()
            phase = self.session.phase
        label = previous.value if previous else "nothing pending"
        self._log(f"[Pump] Acknowledged ({label})")
        return {"phase": phase.value}

    def clear_logs(self) -> None:
        with self._log_lock:
            self._log_buffer = []
        self._broadcast_status()

    # ---------------------------------------------------
    # INTERNALS
    # ---------------------------------------------------
    def _log(self, message: str) -> None:
        self._append_log(message)
        self._broadcast_status()

    def _append_log(self, message: str) -> None:
        with self._log_lock:
            self._log_buffer.append(message)
            self._log_buffer = self._log_buffer[-500:]

    def _broadcast_status(self) -> None:
        if not self._loop or not self._sse_subscribers:
            return
        with self._state_lock:
            snapshot = self._snapshot_unlocked()
        payload = json.dumps(snapshot)
        for q in list(self._sse_subscribers):
            try:
                self._loop.call_soon_threadsafe(q.put_nowait, payload)
            except RuntimeError:
                # loop already closed
                continue

    def _snapshot_unlocked(self) -> dict:
        session = self.session
        with self._log_lock:
            logs = list(self._log_buffer)
        return {
            "service_id": self.config.service_id,
            "batch_size": session.batch_size,
            **session.status(),
            "rejected": session.rejected,
            "started_at": session.started_at.isoformat() if session.started_at else None,
            "pending_command": session.mailbox.pending.value if session.mailbox.pending else None,
            "delivered": session.mailbox.delivered,
            "has_prediction": session.has_prediction,
            "logs": logs,
        }
