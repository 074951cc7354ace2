"""
Smart refresh protocol for the live (today) window.

Flow per cycle:
    1. ask FreshnessProbe for the device's last update token
    2. same token as last time  -> done, nothing fetched
    3. new token                -> fetch logs since the last fetch boundary,
                                   merge into LiveLogBuffer by record id,
                                   advance boundary and token

A failed check or fetch leaves RefreshState exactly as it was; the next
scheduler tick simply tries again. Nothing in here raises for network
trouble; the outcome says what happened.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Union

from ..api.data_source import DeviceDataSource
from ..errors import TRANSIENT_ERRORS
from ..timeutils import today_start, utc_now
from .freshness import FreshnessProbe
from .log_buffer import LiveLogBuffer

logger = logging.getLogger("iotview.refresh")


class RefreshOutcome(str, Enum):
    UPDATED = "updated"        # new token, logs fetched and merged
    UNCHANGED = "unchanged"    # token equal, no fetch issued
    FAILED = "failed"          # check or fetch failed, state untouched
    DISCARDED = "discarded"    # view closed while the cycle was in flight
    NOT_READY = "not_ready"    # initial load has not completed
    SKIPPED = "skipped"        # a cycle was already running (scheduler)


@dataclass
class RefreshState:
    last_fetch_boundary: datetime
    last_known_update: Any = None


@dataclass
class RefreshResult:
    outcome: RefreshOutcome
    added: int = 0
    error: Optional[str] = None


class SmartRefresher:
    """Owns RefreshState for one device view and runs the refresh protocol."""

    def __init__(
        self,
        device_id: Union[int, str],
        source: DeviceDataSource,
        buffer: LiveLogBuffer,
        probe: Optional[FreshnessProbe] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.device_id = device_id
        self.source = source
        self.buffer = buffer
        self.probe = probe or FreshnessProbe(source)
        self.clock = clock
        self.state: Optional[RefreshState] = None
        self.active = True

    @property
    def last_update(self) -> Any:
        """Server token of the data currently shown (for "Last updated")."""
        return self.state.last_known_update if self.state else None

    async def initialize(self) -> RefreshResult:
        """
        Load the whole day so far and the current freshness token, concurrently.

        The token is optional: without it the first refresh just fetches.
        """
        now = utc_now(self.clock())
        start = today_start(self.clock())

        logs_result, token_result = await asyncio.gather(
            self.source.fetch_logs(self.device_id, start, now),
            self.probe.check_updated(self.device_id),
            return_exceptions=True,
        )
        for result in (logs_result, token_result):
            if isinstance(result, BaseException) and not isinstance(result, TRANSIENT_ERRORS):
                raise result

        if not self.active:
            return RefreshResult(RefreshOutcome.DISCARDED)

        if isinstance(logs_result, BaseException):
            logger.warning(f"Device {self.device_id}: initial load failed: {logs_result}")
            return RefreshResult(RefreshOutcome.FAILED, error=str(logs_result))

        token = None
        if isinstance(token_result, BaseException):
            logger.warning(f"Device {self.device_id}: initial freshness check failed: {token_result}")
        else:
            token = token_result

        self.buffer.replace(logs_result)
        self.state = RefreshState(last_fetch_boundary=now, last_known_update=token)
        logger.info(f"Device {self.device_id}: loaded {len(self.buffer)} records for today")
        return RefreshResult(RefreshOutcome.UPDATED, added=len(self.buffer))

    async def refresh(self) -> RefreshResult:
        """Run one smart refresh cycle."""
        if not self.active or self.state is None:
            return RefreshResult(RefreshOutcome.NOT_READY)
        state = self.state

        try:
            token = await self.probe.check_updated(self.device_id)
        except TRANSIENT_ERRORS as e:
            logger.warning(f"Device {self.device_id}: freshness check failed: {e}")
            return RefreshResult(RefreshOutcome.FAILED, error=str(e))

        if not self.active or self.state is not state:
            return RefreshResult(RefreshOutcome.DISCARDED)

        if token == state.last_known_update:
            logger.debug(f"Device {self.device_id}: no new data, skipping fetch")
            return RefreshResult(RefreshOutcome.UNCHANGED)

        now = utc_now(self.clock())
        try:
            # Server treats "from" inclusively; the overlap is removed by id
            records = await self.source.fetch_logs(self.device_id, state.last_fetch_boundary, now)
        except TRANSIENT_ERRORS as e:
            logger.warning(f"Device {self.device_id}: log fetch failed: {e}")
            return RefreshResult(RefreshOutcome.FAILED, error=str(e))

        if not self.active or self.state is not state:
            return RefreshResult(RefreshOutcome.DISCARDED)

        added = self.buffer.merge(records)
        self.state = RefreshState(last_fetch_boundary=now, last_known_update=token)
        logger.debug(f"Device {self.device_id}: refresh merged {len(added)} of {len(records)} records")
        return RefreshResult(RefreshOutcome.UPDATED, added=len(added))

    def discard(self) -> None:
        """View closed: forget state and ignore responses still in flight."""
        self.active = False
        self.state = None
