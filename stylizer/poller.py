"""Fixed-interval polling of a training session until it completes, fails or the cap is hit."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from stylizer.config import MAX_POLLS, POLL_INTERVAL_S
from stylizer.models import SessionStatus, TrainingSession

logger = logging.getLogger(__name__)

TRAINING_FAILED_MESSAGE = "Training failed. Please try again."


class TrainingFailedError(RuntimeError):
    def __init__(self, session: TrainingSession, message: str = TRAINING_FAILED_MESSAGE) -> None:
        super().__init__(message)
        self.session = session


class PollTimeoutError(TimeoutError):
    def __init__(self, session_id: str, polls: int) -> None:
        super().__init__(f"Training session {session_id} still processing after {polls} polls")
        self.session_id = session_id
        self.polls = polls


def poll_training_session(
    fetch: Callable[[str], TrainingSession | None],
    session_id: str,
    interval: float = POLL_INTERVAL_S,
    max_polls: int = MAX_POLLS,
    on_progress: Callable[[float], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> TrainingSession:
    """Poll ``fetch(session_id)`` every ``interval`` seconds.

    Each tick reports the session progress through ``on_progress``. Returns
    the session once it is completed, raises TrainingFailedError when it
    fails and PollTimeoutError after ``max_polls`` ticks. A tick that finds
    no row is skipped.
    """
    if max_polls < 1:
        raise ValueError("max_polls must be at least 1")

    for tick in range(1, max_polls + 1):
        sleep(interval)
        session = fetch(session_id)
        if session is None:
            logger.warning("Poll %d/%d: session %s not found", tick, max_polls, session_id)
            continue

        if on_progress:
            on_progress(session.progress)

        if session.status is SessionStatus.COMPLETED:
            logger.info("Session %s completed after %d polls", session_id, tick)
            return session
        if session.status is SessionStatus.FAILED:
            logger.error("Session %s failed: %s", session_id, session.error or "no detail")
            raise TrainingFailedError(session)

        logger.debug("Poll %d/%d: session %s at %.1f%%", tick, max_polls, session_id, session.progress)

    raise PollTimeoutError(session_id, max_polls)
