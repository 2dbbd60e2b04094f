"""Remote board service client — async httpx.

Two calls matter to the tracker: fetch the current board, and post a tile
submission (screenshot + audit metadata). Both return a Board; the service
answers a submission with the updated board.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from app.tracker.models import AutoSubmissionMetadata, Board

logger = logging.getLogger(__name__)


class TrackerClientError(Exception):
    """Remote call failed: no API key, transport error or non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TrackerClient:
    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        if not self.has_api_key:
            raise TrackerClientError("No API key configured")
        return {"Authorization": f"Bearer {self.api_key}"}

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = self._headers()
        try:
            response = await self._http.request(
                method, f"{self.base_url}{path}", headers=headers, **kwargs
            )
        except httpx.HTTPError as exc:
            raise TrackerClientError(f"{method} {path} failed: {exc}") from exc

        if response.is_success:
            return response

        message = f"Unsuccessful response {response.status_code} for {method} {path}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            message = str(body["error"])
        raise TrackerClientError(message, status_code=response.status_code)

    @staticmethod
    def _parse_board(response: httpx.Response) -> Board:
        try:
            return Board.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TrackerClientError(f"Malformed board payload: {exc}") from exc

    async def fetch_board(self, bingo_id: str) -> Board:
        response = await self._request("GET", f"/api/runelite/bingos/{bingo_id}")
        return self._parse_board(response)

    async def submit_tile(
        self,
        tile_id: str,
        evidence: bytes | None,
        metadata: AutoSubmissionMetadata | None = None,
    ) -> Board:
        files = None
        if evidence is not None:
            files = {"image": ("screenshot.png", evidence, "image/png")}
        data = {}
        if metadata is not None:
            data["metadata"] = metadata.model_dump_json(by_alias=True, exclude_none=True)

        response = await self._request(
            "POST",
            f"/api/runelite/tiles/{tile_id}/submissions",
            files=files,
            data=data,
        )
        logger.info("Submitted tile %s", tile_id)
        return self._parse_board(response)
