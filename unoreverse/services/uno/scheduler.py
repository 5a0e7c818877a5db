import logging
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)


class ScheduledTurn:
    """Handle for a pending bot turn. Cancelling it makes the turn a no-op when it fires."""

    def __init__(self, label: str):
        self.label = label
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class TurnScheduler:
    """Runs delayed callbacks for simulated bot thinking time.

    - ``start_task`` launches a background task (``socketio.start_background_task``
      in the server); without one, callbacks run inline and immediately
    - ``sleep`` is the cooperative sleep matching ``start_task``
    - ``cancel_all`` lets restart/teardown drop every pending turn
    """

    def __init__(self, delay: float = 0.0, start_task: Optional[Callable] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        self.delay = delay
        self.start_task = start_task
        self.sleep = sleep
        self._pending: Set[ScheduledTurn] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, label: str, fn: Callable, *args) -> ScheduledTurn:
        turn = ScheduledTurn(label)
        self._pending.add(turn)

        def _worker():
            if self.delay and self.sleep:
                self.sleep(self.delay)
            self._pending.discard(turn)
            if turn.cancelled:
                logger.info(f"[bot-abort] {label} cancelled before firing")
                return
            turn.fired = True
            fn(*args)

        if self.start_task is None:
            _worker()
        else:
            self.start_task(_worker)
        return turn

    def cancel_all(self) -> int:
        pending = list(self._pending)
        for turn in pending:
            turn.cancel()
        self._pending.clear()
        return len(pending)
