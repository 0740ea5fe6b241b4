#!/usr/bin/env python3
# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Distributed Media Command Parser (dm-parser)

Turns a free-text utterance (Spanish or English) into a candidate command
for the coordinator, or a clarification question when it can't.  Rules are
keyword matches checked in order; first match wins.  The output is only a
suggestion — the coordinator validates it like any other payload.

Usage:
    POST /parse {"utterance": "pausa sess_18f_ab12", "context": {...}}
    → {"input": {...}, "output": {"command": {...}, "clarificationQuestion": null}}

Port: 8092
"""

import logging
import os
import re
import sys

from aiohttp import web

# Ensure services/ is on the path for sibling imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from medialib.config import cfg, service_port

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dm-parser")

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
PARSER_PORT = 8092
DEFAULT_TV_ID = cfg("parser", "default_tv_id", default="tv_living_room")
DEFAULT_ZONE_ID = cfg("parser", "default_zone_id", default="zone_living_room")
DEFAULT_CONTENT_REF = cfg("parser", "default_content_ref", default="demo-video")

SESSION_ID_RE = re.compile(r"\b(sess_[0-9a-f]+_[0-9a-f]+)\b")
VOLUME_RE = re.compile(r"(\d{1,3})")

ASK_WHAT = "What do you want to play, and on which TV?"
ASK_VOLUME = "Which volume (0 to 100), and in which zone?"
ASK_UNKNOWN = "I didn't understand. Do you want to play, pause, stop, move audio or change the volume?"
ASK_SESSION = {
    "STOP": "Which session should I stop? Give me the sessionId.",
    "PAUSE": "Which session should I pause? Give me the sessionId.",
    "RESUME": "Which session should I resume? Give me the sessionId.",
    "MOVE_AUDIO": "I need the sessionId to move the audio.",
    "MOVE_AUDIO_BT": "I need the sessionId to move the audio to Bluetooth.",
}


def normalize(text) -> str:
    return str(text or "").strip().lower()


def find_session_id(text: str, context: dict | None) -> str | None:
    """Session id mentioned in the utterance, else the one carried in *context*."""
    match = SESSION_ID_RE.search(text)
    if match:
        return match.group(1)
    if isinstance(context, dict) and isinstance(context.get("sessionId"), str):
        return context["sessionId"] or None
    return None


def _result(command: dict | None, question: str | None = None) -> dict:
    return {"command": command, "clarificationQuestion": question}


def _session_command(command: dict, session_id: str | None, question: str) -> dict:
    """Attach *session_id* if known, otherwise ask for it."""
    if session_id:
        return _result({**command, "sessionId": session_id})
    return _result(command, question)


def parse_utterance(utterance, context: dict | None = None) -> dict:
    """Rule-based parse of one utterance. Returns {command, clarificationQuestion}."""
    text = normalize(utterance)
    if not text:
        return _result(None, ASK_WHAT)

    session_id = find_session_id(text, context)

    if ("lista" in text and "tv" in text) or ("list" in text and "targets" in text):
        return _result({"action": "LIST_TARGETS"})

    if text.startswith("para") or "stop" in text:
        return _session_command({"action": "STOP"}, session_id, ASK_SESSION["STOP"])

    if "pausa" in text or "pause" in text:
        return _session_command({"action": "PAUSE"}, session_id, ASK_SESSION["PAUSE"])

    if "continua" in text or "resume" in text:
        return _session_command({"action": "RESUME"}, session_id, ASK_SESSION["RESUME"])

    if "volumen" in text or "volume" in text:
        match = VOLUME_RE.search(SESSION_ID_RE.sub("", text))
        if not match:
            return _result(None, ASK_VOLUME)
        return _result({
            "action": "SET_VOLUME",
            "audioZoneId": DEFAULT_ZONE_ID,
            "volumeLevel": int(match.group(1)),
        })

    if "mueve el audio" in text or "move audio" in text:
        return _session_command(
            {"action": "MOVE_AUDIO", "audioZoneId": DEFAULT_ZONE_ID, "audioOutput": "wired"},
            session_id, ASK_SESSION["MOVE_AUDIO"])

    if "bluetooth" in text:
        return _session_command(
            {"action": "MOVE_AUDIO", "audioZoneId": DEFAULT_ZONE_ID, "audioOutput": "bluetooth"},
            session_id, ASK_SESSION["MOVE_AUDIO_BT"])

    if "pon" in text or "play" in text:
        return _result({
            "action": "PLAY",
            "targetTvId": DEFAULT_TV_ID,
            "contentRef": DEFAULT_CONTENT_REF,
            "audioRoute": "tv",
        })

    return _result(None, ASK_UNKNOWN)


# ---------------------------------------------------------------------------
# HTTP handlers
# ---------------------------------------------------------------------------
async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def handle_parse(request: web.Request) -> web.Response:
    """POST /parse — utterance → candidate command."""
    try:
        data = await request.json()
    except Exception:
        data = {}
    if not isinstance(data, dict):
        data = {}

    utterance = data.get("utterance") or ""
    context = data.get("context") or {}
    output = parse_utterance(utterance, context)
    logger.info("Parsed %r -> %s", utterance,
                (output["command"] or {}).get("action") or "clarification")
    return web.json_response({
        "input": {"utterance": utterance, "context": context},
        "output": output,
    })


def create_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/health", handle_health)
    app.router.add_post("/parse", handle_parse)
    return app


if __name__ == "__main__":
    web.run_app(create_app(), host="0.0.0.0", port=service_port("parser", PARSER_PORT),
                print=lambda msg: logger.info(msg))
