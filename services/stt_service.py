#!/usr/bin/env python3
# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Distributed Media Speech-to-Text (dm-stt)

Wraps a local whisper.cpp binary.  POST /transcribe takes a base64 WAV,
runs whisper on a temp copy and returns the transcript text.

Config (config.json "stt" section, env vars win):
  whisper_binary  – path to the whisper.cpp CLI       ($WHISPER_BINARY_PATH)
  whisper_model   – path to the ggml model file       ($WHISPER_MODEL_PATH)
  threads         – whisper thread count, default 4   ($WHISPER_THREADS)

Port: 8093
"""

import asyncio
import base64
import binascii
import logging
import os
import sys
import tempfile

from aiohttp import web

# Ensure services/ is on the path for sibling imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from medialib.config import cfg, service_port

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dm-stt")

STT_PORT = 8093


class WhisperError(Exception):
    pass


def _setting(env_name: str, key: str, default=None):
    value = os.environ.get(env_name, "").strip()
    if value:
        return value
    return cfg("stt", key, default=default)


def whisper_args(binary: str, model: str, wav_path: str, out_base: str,
                 threads: int, language: str | None = None) -> list[str]:
    """Command line for one whisper.cpp run (transcript lands in out_base + .txt)."""
    args = [binary, "-t", str(threads), "-m", model, "-f", wav_path, "-otxt", "-of", out_base]
    if language:
        args += ["-l", language]
    return args


async def run_whisper(args: list[str]) -> None:
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise WhisperError(f"Failed to start whisper.cpp binary: {e}") from e

    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip() or "n/a"
        raise WhisperError(f"whisper.cpp exited with code {proc.returncode}. stderr: {detail}")


def _remove(path: str):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temp file %s: %s", path, e)


# ---------------------------------------------------------------------------
# HTTP handlers
# ---------------------------------------------------------------------------
async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def handle_transcribe(request: web.Request) -> web.Response:
    """POST /transcribe — base64 WAV → transcript."""
    try:
        data = await request.json()
    except Exception:
        data = {}
    if not isinstance(data, dict):
        data = {}

    audio_b64 = str(data.get("audioWavBase64") or "").strip()
    if not audio_b64:
        return web.json_response({"error": "audioWavBase64 is required"}, status=400)

    binary = _setting("WHISPER_BINARY_PATH", "whisper_binary")
    model = _setting("WHISPER_MODEL_PATH", "whisper_model")
    if not binary or not model:
        return web.json_response(
            {"error": "WHISPER_BINARY_PATH and WHISPER_MODEL_PATH must be set"}, status=500)

    try:
        threads = int(_setting("WHISPER_THREADS", "threads", default=4))
    except (TypeError, ValueError):
        threads = 0
    if threads < 1:
        return web.json_response({"error": "WHISPER_THREADS must be a positive integer"}, status=500)

    try:
        wav_bytes = base64.b64decode(audio_b64)
    except (binascii.Error, ValueError):
        wav_bytes = b""
    if not wav_bytes:
        return web.json_response({"error": "Invalid audioWavBase64"}, status=400)

    fd, wav_path = tempfile.mkstemp(prefix="stt_", suffix=".wav")
    out_base = wav_path[:-len(".wav")] + "_out"
    txt_path = out_base + ".txt"
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(wav_bytes)

        args = whisper_args(binary, model, wav_path, out_base, threads,
                            data.get("languageCode") or None)
        logger.info("Transcribing %d bytes (lang=%s)", len(wav_bytes), data.get("languageCode"))
        await run_whisper(args)

        text = ""
        if os.path.exists(txt_path):
            with open(txt_path, encoding="utf-8") as f:
                text = f.read().strip()
        logger.info("Transcript: %r", text)
        return web.json_response({"accepted": True, "transcriptionText": text})
    except WhisperError as e:
        logger.error("%s", e)
        return web.json_response({"error": str(e)}, status=502)
    finally:
        _remove(wav_path)
        _remove(txt_path)


def create_app() -> web.Application:
    app = web.Application(client_max_size=32 * 1024 * 1024)
    app.router.add_get("/health", handle_health)
    app.router.add_post("/transcribe", handle_transcribe)
    return app


if __name__ == "__main__":
    web.run_app(create_app(), host="0.0.0.0", port=service_port("stt", STT_PORT),
                print=lambda msg: logger.info(msg))
