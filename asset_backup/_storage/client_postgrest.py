"""PostgREST (Supabase REST) data client."""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..base import BaseDataClient, Row
from ..exceptions import DataClientError
from .._utils import compact_json, logger


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def _range_total(response: httpx.Response) -> Optional[int]:
    """Total from a ``Content-Range: 0-24/573`` header, if the server sent one."""
    _, _, total = response.headers.get("Content-Range", "").partition("/")
    return int(total) if total.isdigit() else None


@dataclass
class PostgrestDataClient(BaseDataClient):
    """Data client speaking the PostgREST HTTP dialect.

    ``data_api_url`` is the REST root, e.g. ``https://<project>.supabase.co/rest/v1``.
    Transport errors are retried; HTTP error responses are not.
    """

    transport: Optional[httpx.AsyncBaseTransport] = None
    _client: Optional[httpx.AsyncClient] = field(init=False, default=None)

    def __post_init__(self):
        self.base_url = self.global_config.get("data_api_url", "http://localhost:3000").rstrip("/")
        self.api_key = self.global_config.get("data_api_key", None)
        self.schema = self.global_config.get("data_api_schema", "public")
        self.request_timeout = self.global_config.get("data_api_request_timeout", 30.0)
        self.max_retries = self.global_config.get("data_api_max_retries", 3)
        self.page_size = self.global_config.get("data_api_page_size", 1000)
        self.primary_keys: Dict[str, str] = dict(self.global_config.get("primary_keys", {}))

        self._retry_decorator = retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Accept-Profile": self.schema,
                "Content-Profile": self.schema,
            }
            if self.api_key:
                headers["apikey"] = self.api_key
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.request_timeout,
                transport=self.transport,
            )
            logger.info(f"PostgREST client initialized for {self.base_url} (schema {self.schema})")
        return self._client

    def _primary_key(self, collection: str) -> str:
        return self.primary_keys.get(collection, "id")

    async def _request(
        self,
        method: str,
        collection: str,
        allowed_statuses: tuple = (),
        **kwargs: Any
    ) -> httpx.Response:
        client = self._ensure_client()
        send = self._retry_decorator(client.request)
        try:
            response = await send(method, f"/{collection}", **kwargs)
        except httpx.TransportError as e:
            raise DataClientError(f"{method} request failed: {e}", collection) from e

        if response.is_error and response.status_code not in allowed_statuses:
            raise DataClientError(f"HTTP {response.status_code}: {_error_message(response)}", collection)
        return response

    async def iter_pages(self, collection: str, page_size: int = 1000) -> AsyncIterator[List[Row]]:
        """Page through a collection with Range headers, ordered by primary key.

        The server may cap a page below ``page_size`` (``max-rows``), so a short
        page does not end the read. Paging stops at the exact total reported in
        ``Content-Range``, or at an empty page / 416 when no total is sent.

        Raises:
            DataClientError: if the collection ends before the reported total
        """
        offset = 0
        total: Optional[int] = None
        while total is None or offset < total:
            response = await self._request(
                "GET",
                collection,
                allowed_statuses=(416,),
                params={"select": "*", "order": f"{self._primary_key(collection)}.asc"},
                headers={
                    "Range-Unit": "items",
                    "Range": f"{offset}-{offset + page_size - 1}",
                    "Prefer": "count=exact",
                },
            )
            # 416: offset is past the end of the collection
            if response.status_code == 416:
                break
            total = _range_total(response) if total is None else total
            rows = response.json()
            if not rows:
                break
            yield rows
            offset += len(rows)

        if total is not None and offset < total:
            raise DataClientError(f"Read stopped at {offset} of {total} rows", collection)

    async def read_all(self, collection: str) -> List[Row]:
        rows: List[Row] = []
        async for page in self.iter_pages(collection, self.page_size):
            rows.extend(page)
        logger.debug(f"Read {len(rows)} rows from {collection}")
        return rows

    async def read_recent(self, collection: str, order_by: str = "created_at", limit: int = 1000) -> List[Row]:
        response = await self._request(
            "GET",
            collection,
            params={"select": "*", "order": f"{order_by}.desc", "limit": str(limit)},
        )
        return response.json()

    async def delete_all(self, collection: str) -> None:
        await self._request(
            "DELETE",
            collection,
            params={self._primary_key(collection): "not.is.null"},
            headers={"Prefer": "return=minimal"},
        )
        logger.debug(f"Deleted all rows from {collection}")

    async def insert_many(self, collection: str, rows: List[Row]) -> None:
        for start in range(0, len(rows), self.page_size):
            batch = rows[start:start + self.page_size]
            await self._request(
                "POST",
                collection,
                content=compact_json(batch).encode("utf-8"),
                headers={"Content-Type": "application/json", "Prefer": "return=minimal"},
            )
        logger.debug(f"Inserted {len(rows)} rows into {collection}")

    async def count_exact(self, collection: str) -> int:
        response = await self._request(
            "HEAD",
            collection,
            params={"select": "*"},
            headers={"Prefer": "count=exact"},
        )
        total = _range_total(response)
        if total is None:
            content_range = response.headers.get("Content-Range", "")
            raise DataClientError(f"Missing exact count in Content-Range: {content_range!r}", collection)
        return total

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
