"""
Async access to the IoT API for one engine instance.

Every call runs the blocking HTTP request in the default executor so the
event loop stays responsive, then validates the payload with the schemas.
A payload with ``success: false`` raises ApiError.
"""

import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import ApiError
from ..models import LogRecord
from ..timeutils import to_iso
from .http_client import IotHttpClient
from .schemas import LastUpdateResponse, LogsRangeResponse, SensorConfigsResponse

logger = logging.getLogger("iotview.api")

LOGS_ENDPOINT = "device_logs.php"
LAST_UPDATE_ENDPOINT = "device_last_update.php"
SENSOR_CONFIG_ENDPOINT = "sensor_config.php"

DeviceId = Union[int, str]


def _boundary(value: Union[str, datetime]) -> str:
    return to_iso(value) if isinstance(value, datetime) else value


class DeviceDataSource:
    """Async facade over IotHttpClient for the endpoints the engine consumes."""

    def __init__(self, http_client: IotHttpClient, page_size: Optional[int] = None):
        self.http_client = http_client
        self.page_size = page_size

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self.http_client.get_json, endpoint, params))

    async def logs_range(
        self,
        device_id: DeviceId,
        date_from: Union[str, datetime],
        date_to: Union[str, datetime],
        keys: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> LogsRangeResponse:
        """Fetch one page of logs between two ISO 8601 boundaries."""
        params = {
            "device_id": device_id,
            "from": _boundary(date_from),
            "to": _boundary(date_to),
            "keys": ",".join(keys) if keys else None,
            "limit": limit,
            "offset": offset,
        }
        data = await self._get(LOGS_ENDPOINT, params)
        response = LogsRangeResponse.model_validate(data)
        if not response.success:
            raise ApiError(LOGS_ENDPOINT, response.error)
        return response

    async def fetch_logs(
        self,
        device_id: DeviceId,
        date_from: Union[str, datetime],
        date_to: Union[str, datetime],
        keys: Optional[Iterable[str]] = None,
    ) -> List[LogRecord]:
        """
        Fetch every log in the window, following ``has_more`` when paging.

        Returns:
            LogRecords in server order
        """
        keys = list(keys) if keys else None
        records: List[LogRecord] = []
        offset = 0

        while True:
            if self.page_size:
                response = await self.logs_range(device_id, date_from, date_to, keys, self.page_size, offset)
            else:
                response = await self.logs_range(device_id, date_from, date_to, keys)

            records.extend(log.to_record(device_id) for log in response.logs)

            if not (self.page_size and response.has_more and response.logs):
                break
            offset += len(response.logs)

        logger.debug(f"Fetched {len(records)} logs for device {device_id} ({date_from} -> {date_to})")
        return records

    async def last_update(self, device_id: DeviceId) -> Any:
        """Return the device's freshness token."""
        data = await self._get(LAST_UPDATE_ENDPOINT, {"device_id": device_id})
        response = LastUpdateResponse.model_validate(data)
        if not response.success:
            raise ApiError(LAST_UPDATE_ENDPOINT, response.error)
        return response.last_update

    async def sensor_configs(self, device_id: DeviceId) -> SensorConfigsResponse:
        data = await self._get(SENSOR_CONFIG_ENDPOINT, {"device_id": device_id})
        response = SensorConfigsResponse.model_validate(data)
        if not response.success:
            raise ApiError(SENSOR_CONFIG_ENDPOINT, response.error)
        return response
