#!/usr/bin/env python3
# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Distributed Media Coordinator (dm-coordinator)

Single control node between clients (CLI, parser, dashboards) and the
playback devices.  Accepts normalized commands on POST /command, validates
them against the command schema and the device inventory, tracks playback
sessions, and forwards side effects to the owning TV or audio zone.

The inventory is loaded once at startup; a malformed inventory aborts the
process before the HTTP server binds.

Port: 8080
"""

import json
import logging
import os
import sys

import aiohttp
from aiohttp import web

# Ensure services/ is on the path for sibling imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from medialib.config import cfg, resolve_path, service_port
from medialib.device_client import DeviceClient
from medialib.dispatcher import CommandDispatcher
from medialib.errors import CoordinatorError, InventoryError
from medialib.inventory import Inventory, load_inventory
from medialib.sessions import SessionStore

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dm-coordinator")

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
COORDINATOR_PORT = 8080
DEFAULT_INVENTORY_PATH = "deploy/inventory.json"


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------
class Coordinator:
    """Owns the inventory, the session store and the outbound HTTP session."""

    def __init__(self, inventory: Inventory, device_timeout: float | None = None):
        self.inventory = inventory
        self.store = SessionStore()
        self.device_timeout = device_timeout
        self._session: aiohttp.ClientSession | None = None
        self.dispatcher: CommandDispatcher | None = None

    async def start(self):
        self._session = aiohttp.ClientSession()
        devices = DeviceClient(self._session, timeout=self.device_timeout)
        self.dispatcher = CommandDispatcher(self.inventory, self.store, devices)
        counts = self.inventory.counts()
        logger.info("Coordinator started (%d TVs, %d zones, %d bluetooth devices)",
                    counts["tvs"], counts["audioZones"], counts["bluetoothDevices"])

    async def stop(self):
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("Coordinator stopped")

    def status(self) -> dict:
        return {
            "inventory": self.inventory.counts(),
            "sessions": {
                "total": len(self.store),
                "byState": self.store.count_by_state(),
            },
        }


COORDINATOR = web.AppKey("coordinator", Coordinator)


# ---------------------------------------------------------------------------
# HTTP handlers
# ---------------------------------------------------------------------------
async def handle_health(request: web.Request) -> web.Response:
    """GET /health — liveness check."""
    return web.json_response({"status": "ok"})


async def handle_command(request: web.Request) -> web.Response:
    """POST /command — validate and dispatch one command."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return web.json_response({"error": "invalid json"}, status=400)

    coordinator = request.app[COORDINATOR]
    result = await coordinator.dispatcher.dispatch(payload)
    return web.json_response(result)


async def handle_sessions(request: web.Request) -> web.Response:
    """GET /sessions — copies of every session, oldest first."""
    store = request.app[COORDINATOR].store
    return web.json_response({"sessions": [s.to_dict() for s in store.all()]})


async def handle_session(request: web.Request) -> web.Response:
    """GET /sessions/{sessionId} — one session."""
    store = request.app[COORDINATOR].store
    session = store.get(request.match_info["session_id"])
    if session is None:
        return web.json_response({"error": "Session not found"}, status=404)
    return web.json_response({"session": session.to_dict()})


async def handle_status(request: web.Request) -> web.Response:
    """GET /status — inventory and session counts."""
    return web.json_response(request.app[COORDINATOR].status())


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------
@web.middleware
async def error_middleware(request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except CoordinatorError as e:
        return web.json_response(e.to_dict(), status=e.status)
    except Exception as e:
        logger.exception("Request error on %s %s", request.method, request.path)
        return web.json_response({"error": str(e)}, status=500)


@web.middleware
async def cors_middleware(request, handler):
    if request.method == "OPTIONS":
        resp = web.Response()
    else:
        resp = await handler(request)
    resp.headers["Access-Control-Allow-Origin"] = "*"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return resp


# ---------------------------------------------------------------------------
# App lifecycle
# ---------------------------------------------------------------------------
async def on_startup(app: web.Application):
    await app[COORDINATOR].start()


async def on_cleanup(app: web.Application):
    await app[COORDINATOR].stop()


def create_app(inventory: Inventory, device_timeout: float | None = None) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[COORDINATOR] = Coordinator(inventory, device_timeout=device_timeout)
    app.router.add_get("/health", handle_health)
    app.router.add_post("/command", handle_command)
    app.router.add_get("/sessions", handle_sessions)
    app.router.add_get("/sessions/{session_id}", handle_session)
    app.router.add_get("/status", handle_status)
    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


def main():
    inventory_path = os.environ.get("INVENTORY_PATH") or cfg(
        "coordinator", "inventory_path", default=DEFAULT_INVENTORY_PATH)
    try:
        inventory = load_inventory(resolve_path(inventory_path))
    except InventoryError as e:
        logger.error("Invalid inventory: %s", e)
        for detail in e.details:
            logger.error("  %s: %s", detail["field"], detail["message"])
        sys.exit(1)

    timeout = cfg("coordinator", "device_timeout")
    app = create_app(inventory, device_timeout=float(timeout) if timeout else None)
    web.run_app(app, host="0.0.0.0", port=service_port("coordinator", COORDINATOR_PORT),
                print=lambda msg: logger.info(msg))


if __name__ == "__main__":
    main()
