"""
Shared fixtures for connect service tests.
"""

import pytest

from shared.config import ConnectConfig


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(monkeypatch):
    """Configuration isolated from the host environment."""
    monkeypatch.delenv("CENTERPOINT_API_TOKEN", raising=False)
    return ConnectConfig(_env_file=None, retry_attempts=0)
