# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Command dispatcher — the coordinator's per-action state machine.

Every command goes through the same steps:

  1. schema validation (``validate_command``)        → CommandValidationError
  2. inventory resolution of every referenced id     → UnknownTargetError
     (skipped for LIST_TARGETS, which is a pure read)
  3. per-action field requirements                   → MissingFieldError
  4. session store mutation and/or device call

Steps 1-3 never change state, so a rejected command leaves the store exactly
as it was.  Step 4 is "local accept, best-effort device call": PLAY creates
its session before calling the TV and MOVE_AUDIO calls the zone before
looking the session up.  Neither is rolled back if the other half fails, so
a DeviceCallError after a PLAY leaves the new session in the store.

Session transitions (STOP/PAUSE/RESUME) are local only; the TV is not told.
"""

import logging

from .commands import Command, validate_command
from .device_client import DeviceClient
from .errors import (
    CommandValidationError,
    MissingFieldError,
    PairingMismatchError,
    SessionNotFoundError,
    UnknownTargetError,
)
from .inventory import Inventory
from .sessions import SessionStore, SessionUpdate

logger = logging.getLogger("dm-coordinator.dispatch")

# Command action → session state it puts the session in
TRANSITIONS = {
    "STOP": "stopped",
    "PAUSE": "paused",
    "RESUME": "playing",
}


class CommandDispatcher:
    """Validates a command, mutates sessions and talks to devices."""

    def __init__(self, inventory: Inventory, store: SessionStore, devices: DeviceClient):
        self.inventory = inventory
        self.store = store
        self.devices = devices
        self._handlers = {
            "LIST_TARGETS": self._list_targets,
            "PLAY": self._play,
            "STOP": self._transition,
            "PAUSE": self._transition,
            "RESUME": self._transition,
            "SEEK": self._seek,
            "MOVE_AUDIO": self._move_audio,
            "SELECT_BLUETOOTH_DEVICE": self._select_bluetooth_device,
            "SET_VOLUME": self._set_volume,
        }

    async def dispatch(self, payload) -> dict:
        """Run one untrusted command payload. Returns the JSON response body."""
        check = validate_command(payload)
        if not check.valid:
            logger.warning("Rejected command: %d schema violation(s): %s",
                           len(check.errors), [e["field"] for e in check.errors])
            raise CommandValidationError(check.errors)

        command = check.command
        if command.action != "LIST_TARGETS":
            self.check_targets(command)

        return await self._handlers[command.action](command)

    def check_targets(self, command: Command) -> None:
        """Every referenced device id must be in the inventory."""
        resolvers = {
            "targetTvId": self.inventory.resolve_tv,
            "audioZoneId": self.inventory.resolve_zone,
            "bluetoothDeviceId": self.inventory.resolve_bluetooth_device,
        }
        for field, ident in command.referenced_targets():
            if resolvers[field](ident) is None:
                logger.warning("Rejected %s: unknown %s '%s'", command.action, field, ident)
                raise UnknownTargetError(field, ident)

    # -- action handlers --

    async def _list_targets(self, command: Command) -> dict:
        return self.inventory.snapshot()

    async def _play(self, command: Command) -> dict:
        if not command.target_tv_id or not command.content_ref:
            raise MissingFieldError("targetTvId and contentRef are required for PLAY")

        tv = self.inventory.resolve_tv(command.target_tv_id)
        session = self.store.create(
            content_ref=command.content_ref,
            target_tv_id=command.target_tv_id,
            audio_route=command.audio_route,
            audio_zone_id=command.audio_zone_id,
            audio_output=command.audio_output,
        )
        logger.info("-> PLAY %s on %s (session %s)",
                    command.content_ref, tv.tv_id, session.session_id)

        # The session stays even if the TV call fails.
        await self.devices.tv_play(tv.endpoint, session.session_id, session.content_ref)
        return {"accepted": True, "session": session.to_dict()}

    async def _transition(self, command: Command) -> dict:
        if not command.session_id:
            raise MissingFieldError(f"sessionId is required for {command.action}")

        new_state = TRANSITIONS[command.action]
        async with self.store.lock(command.session_id):
            session = self.store.update(command.session_id, SessionUpdate(state=new_state))
        if session is None:
            raise SessionNotFoundError(command.session_id)

        logger.info("-> %s session %s (now %s)", command.action, session.session_id, new_state)
        return {"accepted": True, "session": session.to_dict()}

    async def _seek(self, command: Command) -> dict:
        if not command.session_id:
            raise MissingFieldError("sessionId is required for SEEK")
        if command.seek_seconds is None:
            raise MissingFieldError("seekSeconds is required for SEEK")

        async with self.store.lock(command.session_id):
            session = self.store.update(
                command.session_id, SessionUpdate(last_seek_seconds=command.seek_seconds))
        if session is None:
            raise SessionNotFoundError(command.session_id)

        logger.info("-> SEEK session %s to %ss", session.session_id, command.seek_seconds)
        return {"accepted": True, "session": session.to_dict()}

    async def _move_audio(self, command: Command) -> dict:
        if not command.session_id or not command.audio_zone_id:
            raise MissingFieldError("sessionId and audioZoneId are required for MOVE_AUDIO")

        zone = self.inventory.resolve_zone(command.audio_zone_id)
        audio_output = command.audio_output or "wired"

        async with self.store.lock(command.session_id):
            # Zone is contacted before the session is looked up.
            await self.devices.zone_attach_session(zone.endpoint, command.session_id, audio_output)
            session = self.store.update(command.session_id, SessionUpdate(
                audio_route="zone",
                audio_zone_id=zone.audio_zone_id,
                audio_output=audio_output,
            ))
        if session is None:
            raise SessionNotFoundError(command.session_id)

        logger.info("-> MOVE_AUDIO session %s to %s (%s)",
                    session.session_id, zone.audio_zone_id, audio_output)
        return {"accepted": True, "session": session.to_dict()}

    async def _select_bluetooth_device(self, command: Command) -> dict:
        if not command.audio_zone_id or not command.bluetooth_device_id:
            raise MissingFieldError("audioZoneId and bluetoothDeviceId are required")

        device = self.inventory.resolve_bluetooth_device(command.bluetooth_device_id)
        if device.paired_with_zone_id != command.audio_zone_id:
            logger.warning("Rejected SELECT_BLUETOOTH_DEVICE: %s is paired with %s, not %s",
                           device.bluetooth_device_id, device.paired_with_zone_id,
                           command.audio_zone_id)
            raise PairingMismatchError()

        logger.info("-> SELECT_BLUETOOTH_DEVICE %s in %s",
                    device.bluetooth_device_id, command.audio_zone_id)
        return {
            "accepted": True,
            "selected": {
                "audioZoneId": command.audio_zone_id,
                "bluetoothDeviceId": command.bluetooth_device_id,
            },
        }

    async def _set_volume(self, command: Command) -> dict:
        if not command.audio_zone_id or command.volume_level is None:
            raise MissingFieldError("audioZoneId and volumeLevel are required for SET_VOLUME")

        zone = self.inventory.resolve_zone(command.audio_zone_id)
        logger.info("-> SET_VOLUME %s to %.0f%%", zone.audio_zone_id, command.volume_level)
        await self.devices.zone_set_volume(zone.endpoint, command.volume_level)
        return {"accepted": True}
