"""Fixed retry schedule and per-attempt connection values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from simchannel.config import ClientSettings

DEFAULT_RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 5.0, 10.0, 20.0)


@dataclass(frozen=True)
class RetrySchedule:
    """Ordered backoff delays (seconds), indexed by attempt number.

    No jitter and no growth beyond the table: once ``index`` runs past the
    last entry the schedule is exhausted.
    """

    delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS

    def __post_init__(self) -> None:
        object.__setattr__(self, "delays", tuple(float(delay) for delay in self.delays))
        if any(delay < 0 for delay in self.delays):
            raise ValueError("retry delays must be non-negative")

    @classmethod
    def of(cls, delays: Iterable[float]) -> RetrySchedule:
        return cls(tuple(delays))

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> RetrySchedule:
        return cls.of(settings.retry_delays_seconds)

    def delay_for(self, index: int) -> Optional[float]:
        if 0 <= index < len(self.delays):
            return self.delays[index]
        return None

    def __len__(self) -> int:
        return len(self.delays)


@dataclass(frozen=True)
class ConnectionAttempt:
    """One handshake try. Built fresh for every attempt and then dropped."""

    url: str
    token: Optional[str]
    user_agent: str
    index: int
    connection_id: int

    @property
    def headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers["User-Agent"] = self.user_agent
        return headers
