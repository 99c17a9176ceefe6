import asyncio
from collections import defaultdict
from collections.abc import Callable
from typing import TypeAlias

from axis.logging import get_logger

Handler: TypeAlias = Callable[[str], None]

_logger = get_logger(__name__)


class Subscription:
    """Handle for one channel listener. Released at most once."""

    def __init__(self, channel: "Channel", name: str, handler: Handler):
        self.channel = channel
        self.name = name
        self.handler = handler
        self.active = True

    def release(self) -> None:
        if not self.active:
            return
        self.active = False
        self.channel._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class Channel:
    """Named push channel from the backend.

    - subscribe(name, handler): register a handler, returns a Subscription.
    - emit(name, payload): schedule delivery on the running loop and return.
      Subscribers are read when delivery runs, not when emit is called.
      Errors are logged, never propagated.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> Subscription:
        sub = Subscription(self, name, handler)
        self._subscriptions[name].append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.name)
        if subs:
            try:
                subs.remove(sub)
            except ValueError:
                pass

    def listener_count(self, name: str) -> int:
        return len(self._subscriptions.get(name, []))

    def emit(self, name: str, payload: str) -> None:
        asyncio.get_running_loop().call_soon(self._dispatch, name, payload)

    def emit_threadsafe(self, loop: asyncio.AbstractEventLoop, name: str, payload: str) -> None:
        loop.call_soon_threadsafe(self._dispatch, name, payload)

    def _dispatch(self, name: str, payload: str) -> None:
        for sub in list(self._subscriptions.get(name, [])):
            if not sub.active:
                continue
            try:
                sub.handler(payload)
            except Exception:
                _logger.exception("Handler %s failed on channel %s", getattr(sub.handler, "__qualname__", sub.handler), name)
