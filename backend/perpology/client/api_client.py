"""Chat API client for the controller: async httpx, returns decoded JSON bodies."""
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


class ChatApiError(Exception):
    """Network failure or an undecodable response."""


class ChatApiClient:
    """
    Thin client over the backend routes. Failure bodies ({success: false, error}) are returned,
    not raised; only transport and decode failures raise ChatApiError.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            r = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise ChatApiError(f"{method} {path} failed: {e}") from e
        try:
            body = r.json()
        except ValueError as e:
            raise ChatApiError(f"{method} {path} returned invalid JSON (status {r.status_code})") from e
        if not isinstance(body, dict):
            raise ChatApiError(f"{method} {path} returned unexpected body")
        return body

    async def send_message(
        self,
        message: str,
        *,
        owner_identity: str,
        chat_id: Optional[str] = None,
        is_new_chat: bool = False,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/chat/send",
            json={
                "message": message,
                "chatId": chat_id,
                "ownerIdentity": owner_identity,
                "isNewChat": is_new_chat,
            },
        )

    async def list_chats(self, owner_identity: str) -> dict[str, Any]:
        return await self._request("GET", f"/chats/{owner_identity}")

    async def get_chat(self, owner_identity: str, chat_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/chats/{owner_identity}/{chat_id}")

    async def delete_chat(self, owner_identity: str, chat_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/chats/{owner_identity}/{chat_id}")

    async def chart(self, symbol: str) -> dict[str, Any]:
        return await self._request("GET", f"/market/chart/{symbol}")

    async def close(self) -> None:
        await self._client.aclose()
