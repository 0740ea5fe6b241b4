# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
In-memory session store.

A session ties one PLAY to a TV, an audio route and a transport state.
The store is the only owner of session records: callers always receive
copies, and the only way to change a record is ``update`` with a typed
``SessionUpdate``.  Sessions are never removed for the life of the process.

Concurrency: handlers run on one event loop but interleave at ``await``
points.  ``lock(session_id)`` hands out one ``asyncio.Lock`` per session so
the dispatcher can serialize commands that target the same session.
"""

import asyncio
import dataclasses
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

SessionState = Literal["playing", "paused", "stopped"]
SESSION_STATES = ("playing", "paused", "stopped")


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_session_id() -> str:
    """``sess_<hex epoch ms>_<random hex>`` — unique for the process lifetime."""
    return f"sess_{_now_ms():x}_{secrets.token_hex(6)}"


@dataclass
class Session:
    session_id: str
    content_ref: str | None
    target_tv_id: str | None
    audio_route: str = "tv"
    audio_zone_id: str | None = None
    audio_output: str | None = None
    state: SessionState = "playing"
    last_seek_seconds: float | None = None
    created_at_epoch_ms: int = 0
    updated_at_epoch_ms: int = 0

    def to_dict(self) -> dict:
        data = {
            "sessionId": self.session_id,
            "contentRef": self.content_ref,
            "targetTvId": self.target_tv_id,
            "audioRoute": self.audio_route,
            "audioZoneId": self.audio_zone_id,
            "audioOutput": self.audio_output,
            "state": self.state,
            "createdAtEpochMs": self.created_at_epoch_ms,
            "updatedAtEpochMs": self.updated_at_epoch_ms,
        }
        if self.last_seek_seconds is not None:
            data["lastSeekSeconds"] = self.last_seek_seconds
        return data


@dataclass(frozen=True)
class SessionUpdate:
    """Partial update.  ``None`` leaves the field unchanged."""

    state: SessionState | None = None
    audio_route: str | None = None
    audio_zone_id: str | None = None
    audio_output: str | None = None
    last_seek_seconds: float | None = None

    def changes(self) -> dict:
        return {k: v for k, v in dataclasses.asdict(self).items() if v is not None}


class SessionStore:
    """Keyed collection of sessions with per-session locks."""

    def __init__(self, id_factory=generate_session_id, clock=_now_ms):
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._id_factory = id_factory
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _stamp(self, previous: int = 0) -> int:
        # updatedAtEpochMs must strictly increase even within one millisecond
        return max(self._clock(), previous + 1)

    def create(self, *, content_ref: str | None, target_tv_id: str | None,
               audio_route: str | None = None, audio_zone_id: str | None = None,
               audio_output: str | None = None) -> Session:
        """Create a session in state ``playing``. Returns a copy."""
        session_id = self._id_factory()
        while session_id in self._sessions:
            session_id = self._id_factory()
        now = self._stamp()
        session = Session(
            session_id=session_id,
            content_ref=content_ref,
            target_tv_id=target_tv_id,
            audio_route=audio_route or "tv",
            audio_zone_id=audio_zone_id,
            audio_output=audio_output,
            state="playing",
            created_at_epoch_ms=now,
            updated_at_epoch_ms=now,
        )
        self._sessions[session_id] = session
        logger.info("Session created: %s (tv=%s, content=%s)",
                    session_id, target_tv_id, content_ref)
        return dataclasses.replace(session)

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        return dataclasses.replace(session) if session else None

    def update(self, session_id: str, update: SessionUpdate) -> Session | None:
        """Merge *update* into the session and re-stamp it. None if unknown."""
        existing = self._sessions.get(session_id)
        if existing is None:
            return None
        changes = update.changes()
        updated = dataclasses.replace(
            existing,
            **changes,
            updated_at_epoch_ms=self._stamp(existing.updated_at_epoch_ms),
        )
        self._sessions[session_id] = updated
        logger.debug("Session %s updated: %s", session_id, changes)
        return dataclasses.replace(updated)

    def all(self) -> list[Session]:
        return [dataclasses.replace(s) for s in self._sessions.values()]

    def count_by_state(self) -> dict[str, int]:
        counts = {state: 0 for state in SESSION_STATES}
        for session in self._sessions.values():
            counts[session.state] += 1
        return counts

    def lock(self, session_id: str) -> asyncio.Lock:
        """The lock serializing commands against *session_id*."""
        if session_id not in self._sessions:
            # unknown id: throwaway lock, never stored
            return asyncio.Lock()
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock
