#!/usr/bin/env python3
# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Distributed Media TV Player (dm-tv-player)

Stand-in for a TV's playback endpoint.  Holds one active session and its
transport state; the coordinator starts playback here with POST /play.
Pause/resume/seek/stop exist for direct use — the coordinator does not
forward its STOP/PAUSE/RESUME/SEEK commands to the TV.

Port: 8090
"""

import asyncio
import logging
import os
import sys

from aiohttp import web

# Ensure services/ is on the path for sibling imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from medialib.config import service_port
from medialib.device_base import DeviceService

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dm-tv-player")


class TvPlayer(DeviceService):
    name = "TV Player"
    port = 8090

    def __init__(self):
        super().__init__()
        self.active_session_id: str | None = None
        self.current_content_ref: str | None = None
        self.state = "idle"           # idle | playing | paused
        self.last_seek_seconds: float | None = None

    def snapshot(self) -> dict:
        return {
            "activeSessionId": self.active_session_id,
            "currentContentRef": self.current_content_ref,
            "state": self.state,
            "lastSeekSeconds": self.last_seek_seconds,
        }

    def add_routes(self, app: web.Application):
        app.router.add_post("/play", self._handle_play)
        app.router.add_post("/pause", self._handle_pause)
        app.router.add_post("/resume", self._handle_resume)
        app.router.add_post("/seek", self._handle_seek)
        app.router.add_post("/stop", self._handle_stop)

    def _check_active(self, data: dict) -> str | None:
        """Error message if *data* doesn't name the active session, else None."""
        session_id = data.get("sessionId")
        if not session_id:
            return "sessionId is required"
        if session_id != self.active_session_id:
            return "sessionId does not match active session"
        return None

    # ── Command handlers ──

    async def _handle_play(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        session_id = data.get("sessionId")
        content_ref = data.get("contentRef")
        if not session_id or not content_ref:
            return self.rejected("sessionId and contentRef are required")

        self.active_session_id = session_id
        self.current_content_ref = content_ref
        self.state = "playing"
        self.last_seek_seconds = None
        logger.info("Playing %s (session %s)", content_ref, session_id)
        return self.accepted()

    async def _handle_pause(self, request: web.Request) -> web.Response:
        error = self._check_active(await self.read_body(request))
        if error:
            return self.rejected(error)
        self.state = "paused"
        logger.info("Paused session %s", self.active_session_id)
        return self.accepted()

    async def _handle_resume(self, request: web.Request) -> web.Response:
        error = self._check_active(await self.read_body(request))
        if error:
            return self.rejected(error)
        self.state = "playing"
        logger.info("Resumed session %s", self.active_session_id)
        return self.accepted()

    async def _handle_seek(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        if not data.get("sessionId"):
            return self.rejected("sessionId is required")
        seek_seconds = data.get("seekSeconds")
        if isinstance(seek_seconds, bool) or not isinstance(seek_seconds, (int, float)):
            return self.rejected("seekSeconds must be a number")
        error = self._check_active(data)
        if error:
            return self.rejected(error)
        self.last_seek_seconds = seek_seconds
        logger.info("Seek session %s to %ss", self.active_session_id, seek_seconds)
        return self.accepted()

    async def _handle_stop(self, request: web.Request) -> web.Response:
        error = self._check_active(await self.read_body(request))
        if error:
            return self.rejected(error)
        logger.info("Stopped session %s", self.active_session_id)
        self.active_session_id = None
        self.current_content_ref = None
        self.state = "idle"
        self.last_seek_seconds = None
        return self.accepted()


if __name__ == "__main__":
    player = TvPlayer()
    asyncio.run(player.run(service_port("tv_player", TvPlayer.port)))
