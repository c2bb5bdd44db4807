from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

import httpx

logger = logging.getLogger(__name__)


class SinkError(Exception):
    """Raised when no document store accepted the document."""

    pass


def split_urls(urls: Union[str, Sequence[str]]) -> List[str]:
    items = urls.split(",") if isinstance(urls, str) else list(urls)
    return [url.strip().rstrip("/") for url in items if url.strip()]


class ElasticsearchSink:
    """Indexes JSON documents through the Elasticsearch `_doc` endpoint.

    The addresses are tried in order for every document; the first one that
    answers with a 2xx status wins.
    """

    def __init__(
        self,
        urls: Union[str, Sequence[str]],
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.urls = split_urls(urls)
        if not self.urls:
            raise SinkError("At least one document store URL is required")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def index(self, index_name: str, document: bytes) -> dict:
        errors: List[str] = []
        for url in self.urls:
            try:
                response = await self._client.post(
                    f"{url}/{index_name}/_doc",
                    content=document,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug("Indexing into %s via %s failed: %s", index_name, url, exc)
                errors.append(f"{url}: {exc}")
        raise SinkError(f"Could not index into {index_name}: {'; '.join(errors)}")

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ElasticsearchSink":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()


__all__ = ["ElasticsearchSink", "SinkError", "split_urls"]
