import asyncio
import json
import threading

from domain.errors import InvalidPhase
from domain.models import Phase, PumpCommand


def race(workers, target):
    barrier = threading.Barrier(workers)
    results = []
    results_lock = threading.Lock()

    def run():
        barrier.wait()
        value = target()
        with results_lock:
            results.append(value)

    threads = [threading.Thread(target=run) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_concurrent_ingest_never_overfills_batch(controller):
    controller.start_session()
    outcomes = race(40, lambda: controller.ingest(7.0, 5.0, 300.0))
    accepted = [o for o in outcomes if o.accepted]
    assert len(accepted) == 10
    assert sorted(o.collected for o in accepted) == list(range(1, 11))
    assert controller.session_status()["collected"] == 10
    assert controller.get_status()["rejected"] == 30


def test_concurrent_fetch_delivers_command_once(controller):
    controller.start_session()
    for _ in range(10):
        controller.ingest(7.0, 5.0, 300.0)
    controller.analyze()
    controller.queue_command("START_PUMP_A")
    results = race(25, controller.fetch_command)
    assert results.count(PumpCommand.START_PUMP_A) == 1
    assert results.count(None) == 24


def test_full_cycle_logs_and_snapshot(controller):
    assert controller.start_session() == 10
    for _ in range(10):
        controller.ingest(7.0, 15.0, 1200.0)
    prediction = controller.analyze()
    assert prediction.bracket == "F4"
    assert controller.queue_command("START_PUMP_B") == {
        "command": "START_PUMP_B",
        "phase": Phase.TRANSFERRING_MAIN.value,
    }
    snapshot = controller.get_status()
    assert snapshot["pending_command"] == "START_PUMP_B"
    assert snapshot["delivered"] is False
    assert snapshot["has_prediction"] is True
    assert controller.fetch_command() is PumpCommand.START_PUMP_B
    assert controller.get_status()["delivered"] is True
    assert controller.acknowledge_command() == {"phase": "IDLE"}

    logs = controller.get_status()["logs"]
    assert any(line.startswith("[Analyze] F4") for line in logs)
    assert "[Pump] Delivered START_PUMP_B" in logs
    assert logs[-1] == "[Pump] Acknowledged (START_PUMP_B)"


def test_ignored_ingest_is_logged(controller):
    outcome = controller.ingest(7.0, 5.0, 300.0)
    assert not outcome.accepted
    assert controller.get_status()["logs"][-1] == "[Ingest] Ignored (not collecting)"


def test_log_buffer_is_bounded(controller):
    for _ in range(600):
        controller.ingest(7.0, 5.0, 300.0)
    assert len(controller.get_status()["logs"]) == 500
    controller.clear_logs()
    assert controller.get_status()["logs"] == []


def test_mutations_are_broadcast_to_subscribers(controller):
    async def scenario():
        queue: asyncio.Queue = asyncio.Queue()
        controller.attach_event_loop(asyncio.get_running_loop())
        controller._sse_subscribers.append(queue)
        controller.start_session()
        payload = await asyncio.wait_for(queue.get(), timeout=1.0)
        return json.loads(payload)

    snapshot = asyncio.run(scenario())
    assert snapshot["phase"] == "COLLECTING"
    assert snapshot["service_id"] == "reuse-station"


def test_concurrent_analyze_decides_once(controller):
    controller.start_session()
    for _ in range(10):
        controller.ingest(7.0, 5.0, 300.0)

    def attempt():
        try:
            return controller.analyze()
        except InvalidPhase as exc:
            return exc

    results = race(2, attempt)
    errors = [r for r in results if isinstance(r, InvalidPhase)]
    decisions = [r for r in results if not isinstance(r, InvalidPhase)]
    assert len(errors) == 1
    assert len(decisions) == 1
    assert decisions[0].bracket == "F1"
    assert controller.session_status()["phase"] == "ANALYZED"
