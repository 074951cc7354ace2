"""
HTTP client for the IoT API.

Thin urllib wrapper: builds query strings, attaches the bearer token and
decodes JSON bodies. Blocking; async callers go through DeviceDataSource.
"""

import json
import ssl
from typing import Any, Dict, Optional
from urllib.parse import urlencode
from urllib.request import Request, urlopen


class IotHttpClient:
    """HTTP client for communicating with the IoT API."""

    def __init__(self, api_base: str, token: Optional[str] = None, timeout: int = 10, verify_tls: bool = True):
        """
        Initialize HTTP client.

        Args:
            api_base: Base URL of the API (e.g., https://iot.example.com/api)
            token: Optional bearer token sent with every request
            timeout: Request timeout in seconds
            verify_tls: Verify server certificates for HTTPS URLs
        """
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._ssl_context = self._create_ssl_context(verify_tls)

    def _create_ssl_context(self, verify_tls: bool) -> ssl.SSLContext:
        ssl_context = ssl.create_default_context()
        if not verify_tls:
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        return ssl_context

    def build_url(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Join endpoint and query parameters, dropping None values."""
        url = f"{self.api_base}/{endpoint.lstrip('/')}"
        query = {k: v for k, v in (params or {}).items() if v is not None}
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Make a GET request and decode the JSON body.

        Args:
            endpoint: API endpoint path (e.g., device_logs.php)
            params: Query parameters

        Returns:
            Response data as dictionary

        Raises:
            HTTPError: On HTTP errors
            URLError: On connection errors
            ValueError: On a body that is not JSON
        """
        url = self.build_url(endpoint, params)
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        req = Request(url, headers=headers, method="GET")

        ssl_context = self._ssl_context if url.startswith("https://") else None

        with urlopen(req, timeout=self.timeout, context=ssl_context) as resp:
            raw = resp.read().decode("utf-8")
            return json.loads(raw) if raw else {}
