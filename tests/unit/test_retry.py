import pytest

from callorder.dialogue.retry import RetryPolicy
from callorder.dialogue.states import DialogueState
from callorder.sessions.models import Lifecycle, Session


def test_escalates_exactly_at_threshold():
    policy = RetryPolicy(threshold=3)
    session = Session(call_id="call-1", dialogue_state=DialogueState.PHONE)

    assert policy.register(session, recognized=False) is False
    assert policy.register(session, recognized=False) is False
    assert policy.register(session, recognized=False) is True
    assert session.dialogue_state is DialogueState.CANCELLED
    assert session.lifecycle is Lifecycle.CANCELLED


def test_recognized_turn_resets_counter():
    policy = RetryPolicy(threshold=2)
    session = Session(call_id="call-1")

    policy.register(session, recognized=False)
    policy.register(session, recognized=True)

    assert session.fail_count == 0
    assert policy.register(session, recognized=False) is False


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(threshold=0)
