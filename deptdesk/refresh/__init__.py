"""
DeptDesk - Scheduled Refresh

A fixed-interval timer with an explicit cancellation token, in place of an
ambient polling loop. tick() takes the current time so tests can simulate
ticks deterministically; run() drives ticks from a background thread.

The server uses one scheduler for the optional auto-route sweep
(AUTO_ROUTE_INTERVAL_SECONDS > 0).
"""
import threading
import time
import traceback


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds. Returns True if cancelled meanwhile."""
        return self._event.wait(timeout)


class RefreshScheduler:
    def __init__(self, interval: float, callback, clock=time.monotonic,
                 token: CancellationToken = None, name: str = "refresh"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.clock = clock
        self.token = token or CancellationToken()
        self.name = name
        self.runs = 0
        self.failures = 0
        self.last_result = None
        self.next_due = clock() + interval

    def cancel(self):
        self.token.cancel()

    def tick(self, now: float = None) -> bool:
        """Run the callback if it is due. Returns True if it ran."""
        if self.token.cancelled:
            return False
        now = self.clock() if now is None else now
        if now < self.next_due:
            return False

        # Missed intervals are not replayed
        self.next_due = now + self.interval
        self.runs += 1
        try:
            self.last_result = self.callback()
        except Exception:
            self.failures += 1
            print(f"[Refresh:{self.name}] Callback failed")
            traceback.print_exc()
        return True

    def run(self):
        """Tick until cancelled."""
        print(f"[Refresh:{self.name}] Every {self.interval:g}s")
        while not self.token.cancelled:
            self.tick()
            remaining = max(0.0, self.next_due - self.clock())
            if self.token.wait(remaining):
                break
        print(f"[Refresh:{self.name}] Stopped after {self.runs} runs")

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name=f"deptdesk-{self.name}", daemon=True)
        thread.start()
        return thread


def auto_route_sweep() -> dict:
    """One background auto-route pass over the store."""
    from deptdesk.db import transaction
    from deptdesk.routing import auto_route

    with transaction() as db:
        return auto_route(db)
