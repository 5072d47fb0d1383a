from domain.mailbox import CommandMailbox, SlotState
from domain.models import PumpCommand


def test_take_hands_out_command_once():
    box = CommandMailbox()
    box.put(PumpCommand.START_PUMP_A)
    assert box.take() is PumpCommand.START_PUMP_A
    assert box.state is SlotState.DELIVERED
    assert box.delivered
    assert box.take() is None
    assert box.pending is PumpCommand.START_PUMP_A


def test_empty_mailbox_returns_none():
    box = CommandMailbox()
    assert box.take() is None
    assert box.state is SlotState.EMPTY


def test_put_requeues_after_delivery():
    box = CommandMailbox()
    box.put(PumpCommand.START_PUMP_C)
    box.take()
    box.put(PumpCommand.STOP_ALL)
    assert not box.delivered
    assert box.take() is PumpCommand.STOP_ALL


def test_clear_empties_slot():
    box = CommandMailbox()
    box.put(PumpCommand.START_PUMP_B)
    box.clear()
    assert box.pending is None
    assert box.take() is None
