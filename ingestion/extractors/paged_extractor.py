"""
Paged JSON source reader for Socrata-style query endpoints.

The endpoint accepts ``$select``, ``$where``, ``$order``, ``$limit`` and
``$offset`` and answers with a JSON array of row objects. One call reads
exactly one page; an empty array means the dataset is exhausted at that
offset.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from core.exceptions import FetchError
from ingestion.http import fetch

logger = logging.getLogger(__name__)


class PagedJSONSource:
    """
    One remote dataset read page by page.

    Attributes:
        endpoint: Query URL (e.g. ``https://data.cityofnewyork.us/resource/64uk-42ks.json``)
        select: Columns for ``$select``; None selects all
        where: ``$where`` filter expression
        order: ``$order`` expression; offsets are only stable under a fixed order
        auth_token: Sent as ``X-App-Token`` when set
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        select: Optional[Sequence[str]] = None,
        where: Optional[str] = None,
        order: Optional[str] = ":id",
        auth_token: Optional[str] = None
    ):
        self.client = client
        self.endpoint = endpoint
        self.select = list(select) if select else None
        self.where = where
        self.order = order
        self.auth_token = auth_token

    def _params(self, offset: int, limit: int) -> Dict[str, str]:
        params = {
            "$limit": str(limit),
            "$offset": str(offset),
        }
        if self.select:
            params["$select"] = ",".join(self.select)
        if self.where:
            params["$where"] = self.where
        if self.order:
            params["$order"] = self.order
        return params

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.auth_token:
            headers["X-App-Token"] = self.auth_token
        return headers

    async def read_page(self, offset: int, limit: int) -> List[Dict[str, Any]]:
        """
        Fetch the page starting at ``offset``.

        Raises:
            FetchError: Non-2xx status, or a body that is not a JSON array
            TransportError: The endpoint could not be reached
        """
        response = await fetch(
            self.client,
            self.endpoint,
            params=self._params(offset, limit),
            headers=self._headers()
        )

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(
                "Failed to parse JSON page",
                url=self.endpoint,
                status_code=response.status_code,
                body=response.text,
                context={"offset": offset},
                original_exception=e
            )

        if not isinstance(data, list):
            raise FetchError(
                "Expected a JSON array page",
                url=self.endpoint,
                status_code=response.status_code,
                body=response.text,
                context={"offset": offset}
            )

        logger.debug(f"Fetched {len(data)} rows at offset {offset} from {self.endpoint}")
        return data
