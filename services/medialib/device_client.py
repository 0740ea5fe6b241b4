"""
Outbound HTTP client for TV and audio zone endpoints.

Thin wrapper over a shared ``aiohttp.ClientSession``: one JSON POST per
device operation.  There are no retries and no circuit breaking.  A transport failure raises
``DeviceCallError``; a reply with any status is handed back to the caller.

Chain: coordinator.py → CommandDispatcher → DeviceClient → HTTP → tv_player.py / audio_zone.py
"""

import asyncio
import json
import logging
from dataclasses import dataclass

import aiohttp

from .errors import DeviceCallError

logger = logging.getLogger("dm-coordinator.devices")


@dataclass
class DeviceReply:
    status: int
    body: object

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class DeviceClient:
    """JSON POST to absolute device URLs."""

    def __init__(self, session: aiohttp.ClientSession, timeout: float | None = None):
        self._session = session
        # None keeps the session's own timeout (aiohttp default)
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

    async def post_json(self, url: str, payload: dict) -> DeviceReply:
        kwargs = {"json": payload}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            async with self._session.post(url, **kwargs) as resp:
                text = await resp.text()
                status = resp.status
        except asyncio.TimeoutError as e:
            logger.error("Device timeout: %s", url)
            raise DeviceCallError(url, "timeout") from e
        except aiohttp.ClientError as e:
            logger.error("Device unreachable: %s (%s)", url, e)
            raise DeviceCallError(url, str(e) or type(e).__name__) from e

        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            body = {"raw": text}

        if 200 <= status < 300:
            logger.debug("%s responded: HTTP %d", url, status)
        else:
            logger.warning("%s responded: HTTP %d %s", url, status, text[:200])
        return DeviceReply(status=status, body=body)

    # -- device operations --

    async def tv_play(self, endpoint: str, session_id: str, content_ref: str) -> DeviceReply:
        return await self.post_json(
            f"{endpoint.rstrip('/')}/play",
            {"sessionId": session_id, "contentRef": content_ref},
        )

    async def zone_attach_session(self, endpoint: str, session_id: str,
                                  audio_output: str) -> DeviceReply:
        return await self.post_json(
            f"{endpoint.rstrip('/')}/attach-session",
            {"sessionId": session_id, "audioOutput": audio_output},
        )

    async def zone_set_volume(self, endpoint: str, volume_level: float) -> DeviceReply:
        return await self.post_json(
            f"{endpoint.rstrip('/')}/set-volume",
            {"volumeLevel": volume_level},
        )
