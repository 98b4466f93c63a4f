#client.py
"""
Airtable API clients
"""
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from campfinder.config import (
    AIRTABLE_API_URL, MAX_RETRIES, REQUEST_TIMEOUT, RETRY_BACKOFF, logger
)


class AirtableError(Exception):
    """
    Upstream request failed; ``status_code`` is the upstream HTTP status
    """
    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Airtable API error: {status_code}")


def _records_from(response: httpx.Response) -> Dict[str, Any]:
    if response.status_code >= 400:
        logger.error(f"API Error: Status {response.status_code}")
        logger.error(f"Response: {response.text[:500]}")
        raise AirtableError(response.status_code, response.text)
    try:
        data = response.json()
    except ValueError:
        logger.error(f"Response is not JSON: {response.text[:200]}")
        raise AirtableError(502, "Invalid JSON from upstream")
    if not isinstance(data, dict) or not isinstance(data.get("records", []), list):
        raise AirtableError(502, "Unexpected response shape")
    return data


class AirtableClient:
    """
    Direct Airtable REST client (bearer token authenticated)
    """
    def __init__(
        self,
        api_key: str,
        base_id: str,
        api_url: str = AIRTABLE_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_id = base_id
        self.api_url = api_url.rstrip("/")
        self.client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=REQUEST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """
        Close the HTTP client
        """
        await self.client.aclose()

    def table_url(self, table: str) -> str:
        return f"{self.api_url}/{self.base_id}/{table}"

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=RETRY_BACKOFF),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    async def fetch_page(self, table: str, offset: Optional[str] = None) -> Dict[str, Any]:
        """
        Fetch one page of records; the result carries ``offset`` when more pages exist
        """
        params = {"offset": offset} if offset else None
        logger.debug(f"Fetching {table} page (offset={offset})")
        response = await self.client.get(self.table_url(table), params=params)
        return _records_from(response)

    async def list_records(self, table: str, offset: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Fetch every record of a table, following ``offset`` cursors one page at a time
        """
        records: List[Dict[str, Any]] = []
        while True:
            data = await self.fetch_page(table, offset)
            records.extend(data.get("records", []))
            offset = data.get("offset")
            if not offset:
                break
        logger.info(f"Retrieved {len(records)} records from {table}")
        return records

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create one record. Not retried: a repeated POST would duplicate it.
        """
        response = await self.client.post(self.table_url(table), json={"fields": fields})
        if response.status_code >= 400:
            logger.error(f"Create in {table} failed: Status {response.status_code}")
            raise AirtableError(response.status_code, response.text)
        return response.json()


class ProxyClient:
    """
    Reads tables through this site's ``/api/airtable`` proxy, which already
    returns every page in a single response
    """
    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT, transport=transport)

    async def close(self):
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=RETRY_BACKOFF),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    async def list_records(self, table: str) -> List[Dict[str, Any]]:
        response = await self.client.get(f"{self.base_url}/api/airtable", params={"table": table})
        data = _records_from(response)
        records = data.get("records", [])
        logger.info(f"Retrieved {len(records)} records from {table} via proxy")
        return records


class UnconfiguredSource:
    """
    Stand-in used when neither credentials nor a proxy URL are configured
    """
    async def list_records(self, table: str) -> List[Dict[str, Any]]:
        raise AirtableError(500, "Server configuration error")

    async def close(self):
        pass


def create_record_source(settings, transport: Optional[httpx.AsyncBaseTransport] = None):
    """
    Pick where camp data is read from: the proxy when a proxy URL is set,
    otherwise Airtable directly
    """
    if settings.airtable_proxy_url:
        return ProxyClient(settings.airtable_proxy_url, transport=transport)
    if settings.airtable_configured:
        return AirtableClient(settings.airtable_api_key, settings.airtable_base_id, transport=transport)
    logger.warning("Airtable is not configured; camp listings will be empty")
    return UnconfiguredSource()
