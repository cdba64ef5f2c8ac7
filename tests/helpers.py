import asyncio

from enigma.utils.models import ReputationSignals, ReputationVerdict


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider:
    """Deterministic reputation provider that records every call."""

    def __init__(self, verdicts=None, error=None, delay: float = 0.0):
        self.verdicts = verdicts or {}
        self.error = error
        self.delay = delay
        self.calls = []

    async def fetch(self, address: str) -> ReputationVerdict:
        self.calls.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.verdicts.get(address, ReputationVerdict(is_suspicious=False))


class RecordingTransport:
    def __init__(self):
        self.sent = []
        self.closed = False

    async def send_json(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True

    def events(self, name=None):
        return [frame for frame in self.sent if name is None or frame["event"] == name]


class BrokenTransport(RecordingTransport):
    async def send_json(self, data):
        raise ConnectionResetError("socket is gone")


def suspicious_verdict(proxy=False, vpn=True, tor=False, score=88) -> ReputationVerdict:
    return ReputationVerdict(
        is_suspicious=True,
        signals=ReputationSignals(proxy=proxy, vpn=vpn, tor=tor),
        risk_score=score,
    )


