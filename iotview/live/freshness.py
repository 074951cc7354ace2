"""Cheap "has anything changed?" check used before pulling device logs."""

import logging
from typing import Any, Union

from ..api.data_source import DeviceDataSource

logger = logging.getLogger("iotview.refresh")


class FreshnessProbe:
    """Asks the API for a device's last update token."""

    def __init__(self, source: DeviceDataSource):
        self.source = source

    async def check_updated(self, device_id: Union[int, str]) -> Any:
        """
        Return the opaque freshness token for a device.

        Equal tokens mean no new data. Raises ApiError / OSError / ValueError
        when the check fails.
        """
        token = await self.source.last_update(device_id)
        logger.debug(f"Device {device_id}: last_update={token!r}")
        return token
