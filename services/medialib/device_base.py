# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
DeviceService — shared plumbing for the device-side services (TV player,
audio zone).

A device service is a small state holder behind a REST surface.  Commands
never fail at the HTTP level: a bad request is answered 200 with
``{"accepted": false, "error": ...}`` and a good one with
``{"accepted": true, "state": {...}}``.

Subclass contract:

    class MyDevice(DeviceService):
        name = "TV Player"
        port = 8090

        def snapshot(self) -> dict: ...          # current state for GET /state
        def add_routes(self, app): ...           # device command endpoints

Built-in (no override needed):
    GET /health   — {"status": "ok"}
    GET /state    — snapshot()
    accepted() / rejected() — reply helpers
    read_body()   — request JSON or {} on bad/missing body
"""

import asyncio
import logging
import signal

from aiohttp import web

log = logging.getLogger(__name__)


class DeviceService:
    # ── Subclass must set these ──
    name: str = ""
    port: int = 0

    def __init__(self):
        self._runner: web.AppRunner | None = None

    # ── Abstract methods (subclass must implement) ──

    def snapshot(self) -> dict:
        raise NotImplementedError

    def add_routes(self, app: web.Application):
        """Add device command routes to the app."""

    # ── Reply helpers ──

    def accepted(self) -> web.Response:
        return web.json_response({"accepted": True, "state": self.snapshot()},
                                 headers=self._cors_headers())

    def rejected(self, error: str) -> web.Response:
        log.info("%s rejected request: %s", self.name, error)
        return web.json_response({"accepted": False, "error": error},
                                 headers=self._cors_headers())

    @staticmethod
    async def read_body(request: web.Request) -> dict:
        try:
            data = await request.json()
        except Exception:
            return {}
        return data if isinstance(data, dict) else {}

    def _cors_headers(self):
        return {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        }

    # ── HTTP server ──

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/state", self._handle_state)
        self.add_routes(app)
        return app

    async def start(self, port: int | None = None):
        """Start listening on *port* (defaults to the class port)."""
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", port or self.port)
        await site.start()
        log.info("%s: HTTP on port %d", self.name, port or self.port)

    async def run(self, port: int | None = None):
        """Convenience entry-point: start + wait for signal + stop."""
        await self.start(port)
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        try:
            await stop_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        log.info("%s stopped", self.name)

    # ── HTTP route handlers ──

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"}, headers=self._cors_headers())

    async def _handle_state(self, request: web.Request) -> web.Response:
        return web.json_response(self.snapshot(), headers=self._cors_headers())
