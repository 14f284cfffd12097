from __future__ import annotations

from .mocks import ANY, FakeDynamoDBClient, FakeDynamoDBStreamsClient, FakeTransport


def no_sleep(_: float) -> None:
    return None


class RecordingSleep:
    """Sleep double that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "FakeDynamoDBStreamsClient",
    "FakeTransport",
    "RecordingSleep",
    "no_sleep",
]
