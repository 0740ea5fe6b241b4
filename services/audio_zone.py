#!/usr/bin/env python3
# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Distributed Media Audio Zone (dm-audio-zone)

Stand-in for one audio zone (wired speakers and/or a Bluetooth sink).
Tracks which session is attached, the active output, volume and mute.
The coordinator calls POST /attach-session (MOVE_AUDIO) and
POST /set-volume (SET_VOLUME); the other endpoints are for direct use.

Port: 8091
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
logger = logging.getLogger("dm-audio-zone")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AudioZoneService(DeviceService):
    name = "Audio Zone"
    port = 8091

    def __init__(self):
        super().__init__()
        self.active_session_id: str | None = None
        self.audio_output = "wired"   # wired | bluetooth | both
        self.volume_level: float = 50
        self.muted = False
        self.bluetooth_device_id: str | None = None

    def snapshot(self) -> dict:
        return {
            "activeSessionId": self.active_session_id,
            "audioOutput": self.audio_output,
            "volumeLevel": self.volume_level,
            "muted": self.muted,
            "bluetoothDeviceId": self.bluetooth_device_id,
        }

    def add_routes(self, app: web.Application):
        app.router.add_post("/attach-session", self._handle_attach)
        app.router.add_post("/detach-session", self._handle_detach)
        app.router.add_post("/set-volume", self._handle_set_volume)
        app.router.add_post("/set-mute", self._handle_set_mute)
        app.router.add_post("/select-bluetooth-device", self._handle_select_bluetooth)

    # ── Command handlers ──

    async def _handle_attach(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        session_id = data.get("sessionId")
        if not session_id:
            return self.rejected("sessionId is required")

        self.active_session_id = session_id
        self.audio_output = data.get("audioOutput") or "wired"
        self.bluetooth_device_id = None
        logger.info("Attached session %s (output %s)", session_id, self.audio_output)
        return self.accepted()

    async def _handle_detach(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        session_id = data.get("sessionId")
        if not session_id:
            return self.rejected("sessionId is required")
        if session_id != self.active_session_id:
            return self.rejected("sessionId does not match active session")

        self.active_session_id = None
        self.bluetooth_device_id = None
        logger.info("Detached session %s", session_id)
        return self.accepted()

    async def _handle_set_volume(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        volume_level = data.get("volumeLevel")
        if not _is_number(volume_level):
            return self.rejected("volumeLevel must be a number")
        if volume_level < 0 or volume_level > 100:
            return self.rejected("volumeLevel out of range")

        logger.info("-> volume: %.0f%% -> %.0f%%", self.volume_level, volume_level)
        self.volume_level = volume_level
        return self.accepted()

    async def _handle_set_mute(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        muted = data.get("muted")
        if not isinstance(muted, bool):
            return self.rejected("muted must be a boolean")

        self.muted = muted
        logger.info("Muted: %s", muted)
        return self.accepted()

    async def _handle_select_bluetooth(self, request: web.Request) -> web.Response:
        data = await self.read_body(request)
        device_id = data.get("bluetoothDeviceId")
        if not device_id:
            return self.rejected("bluetoothDeviceId is required")

        self.audio_output = "bluetooth"
        self.bluetooth_device_id = device_id
        logger.info("Bluetooth output -> %s", device_id)
        return self.accepted()


if __name__ == "__main__":
    zone = AudioZoneService()
    asyncio.run(zone.run(service_port("audio_zone", AudioZoneService.port)))
