"""Failure counting and escalation to a human operator."""

from __future__ import annotations

import logging

from callorder.dialogue.states import DialogueState
from callorder.sessions.models import Lifecycle, Session

logger = logging.getLogger("callorder.dialogue")


class RetryPolicy:
    """Count consecutive unusable turns and escalate at ``threshold``."""

    def __init__(self, threshold: int = 3) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold

    def register(self, session: Session, recognized: bool) -> bool:
        """Update the counter for one turn; return True when the call escalates."""

        if recognized:
            session.fail_count = 0
            return False

        session.fail_count += 1
        if session.fail_count < self.threshold:
            return False

        logger.warning(
            "Escalating call %s after %d unrecognized turns in state %s",
            session.call_id,
            session.fail_count,
            session.dialogue_state.value,
        )
        session.dialogue_state = DialogueState.CANCELLED
        session.lifecycle = Lifecycle.CANCELLED
        return True
