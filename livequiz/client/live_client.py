"""Client that mirrors the server's authoritative resources.

Notifications are only hints: on each one the affected resources are fetched
again over HTTP. The socket reconnects after a fixed delay forever, every
(re)connect refreshes everything, and ``/state`` is polled on an interval in
case hints are lost.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from enum import Enum
import json
import logging

import httpx
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from livequiz.constants.network_constants import (
    API_PREFIX,
    POLL_INTERVAL_SECONDS,
    RECONNECT_DELAY_SECONDS,
    WEBSOCKET_PATH,
)
from livequiz.core.notifications import EventKind

logger = logging.getLogger(__name__)


class Resource(str, Enum):
    STATE = f"{API_PREFIX}/state"
    QUIZZES = f"{API_PREFIX}/quizzes"
    RESPONSES = f"{API_PREFIX}/responses"
    LEADERBOARD = f"{API_PREFIX}/leaderboard"


ALL_RESOURCES: tuple[Resource, ...] = tuple(Resource)

INVALIDATIONS: dict[EventKind, tuple[Resource, ...]] = {
    EventKind.STATE_CHANGED: (Resource.STATE, Resource.RESPONSES),
    EventKind.QUIZ_LIST_CHANGED: (Resource.QUIZZES,),
    EventKind.RESPONSE_CHANGED: (Resource.RESPONSES,),
    EventKind.USER_JOINED: (Resource.RESPONSES, Resource.LEADERBOARD),
    EventKind.SCORE_CHANGED: (Resource.LEADERBOARD,),
}


def resources_for(raw_message: str | bytes) -> tuple[Resource, ...]:
    """Resources to re-fetch for one socket frame; empty for unusable frames."""
    try:
        message = json.loads(raw_message)
        kind = EventKind(message["type"])
    except (ValueError, KeyError, TypeError):
        logger.warning("Ignoring malformed live update: %r", raw_message)
        return ()
    return INVALIDATIONS[kind]


def websocket_url(base_url: str) -> str:
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://"):] + WEBSOCKET_PATH
    if base.startswith("http://"):
        return "ws://" + base[len("http://"):] + WEBSOCKET_PATH
    raise ValueError(f"Unsupported base URL: {base_url}")


class LiveQuizClient:
    """Keeps a local copy of state, questions, responses and the leaderboard."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        on_change: Callable[[Resource, object], None] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(base_url=self._base_url, timeout=10.0)
        self._poll_interval = poll_interval
        self._reconnect_delay = reconnect_delay
        self._on_change = on_change
        self.cache: dict[Resource, object] = {}
        self.connected = False

    async def refresh(self, resources: Iterable[Resource] = ALL_RESOURCES) -> None:
        for resource in resources:
            try:
                reply = await self._http.get(resource.value)
                reply.raise_for_status()
                data = reply.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Could not refresh %s: %s", resource.value, exc)
                continue
            if self.cache.get(resource) != data:
                self.cache[resource] = data
                if self._on_change is not None:
                    self._on_change(resource, data)

    async def handle_message(self, raw_message: str | bytes) -> tuple[Resource, ...]:
        resources = resources_for(raw_message)
        await self.refresh(resources)
        return resources

    async def run(self) -> None:
        """Listen and poll until cancelled."""
        await asyncio.gather(self._listen_forever(), self._poll_forever())

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _listen_forever(self) -> None:
        url = websocket_url(self._base_url)
        while True:
            try:
                async with connect(url) as websocket:
                    self.connected = True
                    logger.info("Connected to %s", url)
                    await self.refresh()
                    async for raw_message in websocket:
                        await self.handle_message(raw_message)
            except (OSError, WebSocketException) as exc:
                logger.info("Live updates unavailable (%s)", exc)
            finally:
                self.connected = False
            logger.info("Reconnecting in %.1fs", self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)

    async def _poll_forever(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self.refresh((Resource.STATE,))
