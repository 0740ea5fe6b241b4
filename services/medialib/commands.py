# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Command schema — the closed shape every ``POST /command`` body must have.

Validation is pure: ``validate_command`` never touches the session store or
the inventory.  Every violation is reported, not just the first, so clients
(and the parser service) can fix a command in one round trip.
"""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .schema import flatten_errors

ACTIONS = (
    "PLAY",
    "STOP",
    "PAUSE",
    "RESUME",
    "SEEK",
    "SET_VOLUME",
    "MOVE_AUDIO",
    "SELECT_BLUETOOTH_DEVICE",
    "LIST_TARGETS",
)

Action = Literal[
    "PLAY",
    "STOP",
    "PAUSE",
    "RESUME",
    "SEEK",
    "SET_VOLUME",
    "MOVE_AUDIO",
    "SELECT_BLUETOOTH_DEVICE",
    "LIST_TARGETS",
]
AudioRoute = Literal["tv", "zone"]
AudioOutput = Literal["wired", "bluetooth", "both"]


class Command(BaseModel):
    """A normalized command.  Wire names are camelCase; no other keys allowed."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        strict=True,
        frozen=True,
        allow_inf_nan=False,
    )

    action: Action
    session_id: str | None = None
    content_ref: str | None = None
    target_tv_id: str | None = None
    audio_route: AudioRoute | None = None
    audio_zone_id: str | None = None
    audio_output: AudioOutput | None = None
    bluetooth_device_id: str | None = None
    seek_seconds: float | None = None
    volume_level: float | None = Field(default=None, ge=0, le=100)

    @field_validator("*", mode="before")
    @classmethod
    def _no_explicit_null(cls, v):
        # Omit a field to leave it unset; null is not a value of any field.
        if v is None:
            raise ValueError("must not be null")
        return v

    def referenced_targets(self) -> list[tuple[str, str]]:
        """(wire field name, id) for every inventory reference in the command."""
        refs = []
        if self.target_tv_id:
            refs.append(("targetTvId", self.target_tv_id))
        if self.audio_zone_id:
            refs.append(("audioZoneId", self.audio_zone_id))
        if self.bluetooth_device_id:
            refs.append(("bluetoothDeviceId", self.bluetooth_device_id))
        return refs

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class CommandCheck:
    """Outcome of validating an untrusted payload."""

    valid: bool
    errors: list[dict] = field(default_factory=list)
    command: Command | None = None


def validate_command(payload) -> CommandCheck:
    """Validate *payload* against the command schema without side effects."""
    try:
        command = Command.model_validate(payload)
    except ValidationError as e:
        return CommandCheck(valid=False, errors=flatten_errors(e))
    return CommandCheck(valid=True, command=command)
