import pytest


class FakeTimer:
    """Stands in for threading.Timer; tests fire it by hand."""

    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True


class FakeTimerFactory:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, fn):
        timer = FakeTimer(delay, fn)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not getattr(t, "fired", False)]

    def fire_next(self) -> FakeTimer:
        timer = self.pending[0]
        timer.fired = True
        timer.fn()
        return timer

    def run_until_idle(self, limit: int = 50) -> int:
        fired = 0
        while self.pending and fired < limit:
            self.fire_next()
            fired += 1
        return fired


@pytest.fixture
def timers():
    return FakeTimerFactory()
