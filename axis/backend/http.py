import asyncio

import httpx
from pydantic import TypeAdapter, ValidationError

from axis.channel import Channel
from axis.constants import OBSERVER_EVENT, REQUEST_TIMEOUT
from axis.errors import BackendError, BackendUnavailable
from axis.logging import get_logger
from axis.models import InteractionLog, SystemStats
from axis.schemas import AskRequest, InteractionLogSchema, SystemStatsSchema

_logger = get_logger(__name__)

_history_adapter = TypeAdapter(list[InteractionLogSchema])

RECONNECT_DELAY = 5.0


class HttpBackend:
    """Client for a remote assistant backend.

    Request/response calls map onto plain JSON endpoints; the push channel is a
    server-sent event stream on ``/events``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise BackendUnavailable(f"{method} {path} failed: {e}") from e
        if response.is_error:
            raise BackendError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    async def ask(self, input: str, session_id: str) -> None:
        body = AskRequest(input=input, session_id=session_id)
        await self._request("POST", "/ask", json=body.model_dump())

    async def fetch_history(self) -> list[InteractionLog]:
        response = await self._request("GET", "/history")
        try:
            rows = _history_adapter.validate_json(response.content)
        except ValidationError as e:
            raise BackendError(f"Malformed history payload: {e}") from e
        return [row.to_model() for row in rows]

    async def delete_session(self, session_id: str) -> None:
        await self._request("DELETE", f"/history/{session_id}")

    async def get_vitals(self) -> SystemStats:
        response = await self._request("GET", "/vitals")
        try:
            return SystemStatsSchema.model_validate_json(response.content).to_model()
        except ValidationError as e:
            raise BackendError(f"Malformed vitals payload: {e}") from e

    async def stream_events(self, channel: Channel) -> None:
        """Read one SSE connection and emit every observer event on the channel."""
        event = "message"
        data: list[str] = []
        async with self._client.stream("GET", "/events", timeout=None) as response:
            if response.is_error:
                raise BackendError(f"GET /events returned {response.status_code}", status_code=response.status_code)
            async for line in response.aiter_lines():
                if not line:
                    if data and event == OBSERVER_EVENT:
                        channel.emit(OBSERVER_EVENT, "\n".join(data))
                    event, data = "message", []
                elif line.startswith(":"):
                    continue
                elif line.startswith("event:"):
                    event = line[len("event:") :].strip()
                elif line.startswith("data:"):
                    data.append(line[len("data:") :].lstrip())

    async def listen(self, channel: Channel) -> None:
        """Keep the event stream connected until cancelled."""
        while True:
            try:
                await self.stream_events(channel)
            except asyncio.CancelledError:
                raise
            except (BackendError, httpx.HTTPError):
                _logger.warning("Observer stream dropped, reconnecting in %.0fs", RECONNECT_DELAY, exc_info=True)
            await asyncio.sleep(RECONNECT_DELAY)
