"""Waiting for RBAC grants to propagate.

Role assignments are recorded immediately but honored by the registry only
after a delay. Policies here decide how long to wait after a new grant.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from capdeploy.utils.console_like import ConsoleLike, coalesce_console

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import PropagationSettings

PermissionProbe = Callable[[], bool]


class PropagationPolicy(ABC):
    """Strategy for waiting after a new grant or binding."""

    def __init__(
        self,
        *,
        sleep: Callable[[float], None] = time.sleep,
        console: ConsoleLike | None = None,
    ) -> None:
        self._sleep = sleep
        self.console = coalesce_console(console)

    @abstractmethod
    def wait(self, probe: PermissionProbe | None = None) -> float:
        """Block until the grant is assumed effective.

        Args:
            probe: Returns True once the permission is visible

        Returns:
            Seconds spent waiting
        """


class NoWaitPolicy(PropagationPolicy):
    """Returns immediately (tests and dry runs)."""

    def wait(self, probe: PermissionProbe | None = None) -> float:
        return 0.0


class FixedDelayPolicy(PropagationPolicy):
    """Sleeps for a fixed interval."""

    def __init__(
        self,
        delay_seconds: float = 15.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        console: ConsoleLike | None = None,
    ) -> None:
        super().__init__(sleep=sleep, console=console)
        self.delay_seconds = delay_seconds

    def wait(self, probe: PermissionProbe | None = None) -> float:
        if self.delay_seconds <= 0:
            return 0.0
        self.console.info(f"Waiting {self.delay_seconds:g} seconds for RBAC propagation...")
        self._sleep(self.delay_seconds)
        return self.delay_seconds


class ProbingBackoffPolicy(PropagationPolicy):
    """Polls a probe with exponential backoff, then waits a short grace period.

    The probe only shows that the assignment is recorded, not that the
    registry already honors it, hence the grace period after success. When
    the probe never succeeds within the timeout, the grace period still runs
    and the caller proceeds.
    """

    def __init__(
        self,
        *,
        initial_interval: float = 2.0,
        max_interval: float = 16.0,
        timeout: float = 120.0,
        grace: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        console: ConsoleLike | None = None,
    ) -> None:
        super().__init__(sleep=sleep, console=console)
        self.initial_interval = initial_interval
        self.max_interval = max_interval
        self.timeout = timeout
        self.grace = grace
        self._clock = clock

    def wait(self, probe: PermissionProbe | None = None) -> float:
        waited = 0.0
        if probe is not None:
            self.console.info("Waiting for AcrPull assignment to become visible...")
            start = self._clock()
            interval = self.initial_interval
            while not probe():
                elapsed = self._clock() - start
                if elapsed >= self.timeout:
                    logger.warning(
                        f"Role assignment not visible after {elapsed:.0f}s; continuing"
                    )
                    break
                pause = min(interval, self.max_interval, self.timeout - elapsed)
                self._sleep(pause)
                waited += pause
                interval *= 2

        if self.grace > 0:
            self._sleep(self.grace)
            waited += self.grace
        return waited


def build_policy(
    settings: PropagationSettings,
    *,
    console: ConsoleLike | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PropagationPolicy:
    """Create the policy selected in configuration."""
    if settings.strategy == "none":
        return NoWaitPolicy(sleep=sleep, console=console)
    if settings.strategy == "probe":
        return ProbingBackoffPolicy(
            initial_interval=settings.initial_interval_seconds,
            max_interval=settings.max_interval_seconds,
            timeout=settings.timeout_seconds,
            grace=settings.grace_seconds,
            sleep=sleep,
            console=console,
        )
    return FixedDelayPolicy(settings.delay_seconds, sleep=sleep, console=console)
