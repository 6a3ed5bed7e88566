"""Helper handlers and fakes shared by the test modules."""

from stepflow.handlers.base import StepHandler


REFUND_ANSWER = "Digital products can be refunded within 14 days if not downloaded."


class EchoHandler(StepHandler):
    """Returns its params as output; records every call."""

    type = "echo"
    description = "Echo params"

    def __init__(self):
        self.calls = []

    async def execute(self, params, ctx):
        self.calls.append((params, ctx))
        return self.success(dict(params), duration_ms=0)


class FlakyHandler(StepHandler):
    """Fails (raises or returns failure) ``failures`` times, then succeeds."""

    type = "flaky"
    description = "Fails a fixed number of times"

    def __init__(self, failures: int, mode: str = "raise", recoverable: bool = True):
        self.failures = failures
        self.mode = mode
        self.recoverable = recoverable
        self.attempts = 0

    async def execute(self, params, ctx):
        self.attempts += 1
        if self.attempts <= self.failures:
            if self.mode == "raise":
                raise RuntimeError(f"boom #{self.attempts}")
            return self.failure(
                f"failed #{self.attempts}", code="FLAKY", recoverable=self.recoverable
            )
        return self.success({"attempt": self.attempts})


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000


