"""Minimal async client for the Slack Web API."""
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from ..errors import SlackAPIError

log = structlog.get_logger()

METHOD_CHAT_POST_MESSAGE = "chat.postMessage"
METHOD_USERS_INFO = "users.info"


class SlackUser(BaseModel):
    """The parts of a ``users.info`` user object this service reads."""

    id: str = ""
    name: str = ""
    tz: str = ""
    # Seconds to offset UTC by for the user's timezone
    tz_offset: int = 0


class SlackClient:
    """
    Async Slack Web API client.

    One ``httpx.AsyncClient`` is shared by all requests; every call uses a
    fixed timeout.
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://slack.com/api",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def _call(self, method: str, request: httpx.Request) -> dict[str, Any]:
        try:
            response = await self._get_client().send(request)
        except httpx.HTTPError as e:
            raise SlackAPIError(f"Request to Slack API method {method} failed: {e}") from e

        if response.status_code != 200:
            raise SlackAPIError(f"Received non-success response from Slack API: {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise SlackAPIError(f"Slack API method {method} returned invalid JSON: {e}") from e

        if not body.get("ok"):
            raise SlackAPIError(
                "Received error response from Slack API. "
                f"See https://api.slack.com/methods/{method}#errors for more info. "
                f"Error: {body.get('error', '')}"
            )
        return body

    async def chat_post_message(self, channel: str, text: str, **fields: Any) -> dict[str, Any]:
        """
        Post a message to a channel (https://api.slack.com/methods/chat.postMessage).

        Args:
            channel: Channel ID or name
            text: Message text (mrkdwn)
            **fields: Extra ``chat.postMessage`` arguments

        Raises:
            SlackAPIError: If the call fails
        """
        payload = {"channel": channel, "text": text, "mrkdwn": True, **fields}
        request = self._get_client().build_request(
            "POST",
            f"{self.api_url}/{METHOD_CHAT_POST_MESSAGE}",
            json=payload,
            headers={"Authorization": f"Bearer {self._token}"},
        )
        return await self._call(METHOD_CHAT_POST_MESSAGE, request)

    async def users_info(self, user_id: str) -> SlackUser:
        """
        Look up a user (https://api.slack.com/methods/users.info).

        Raises:
            SlackAPIError: If the call fails
        """
        request = self._get_client().build_request(
            "GET",
            f"{self.api_url}/{METHOD_USERS_INFO}",
            params={"user": user_id},
            headers={"Authorization": f"Bearer {self._token}"},
        )
        body = await self._call(METHOD_USERS_INFO, request)
        return SlackUser.model_validate(body.get("user") or {})

    async def post_to_response_url(self, response_url: str, text: str) -> None:
        """
        Reply to an interaction through its ``response_url`` (ephemeral by default).

        Raises:
            SlackAPIError: If the request fails
        """
        try:
            response = await self._get_client().post(response_url, json={"text": text})
        except httpx.HTTPError as e:
            raise SlackAPIError(f"Failed to post to response_url: {e}") from e

        if response.status_code != 200:
            raise SlackAPIError(f"Received non-success response from response_url: {response.status_code}")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
