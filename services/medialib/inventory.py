# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Device inventory — the static catalog of TVs, audio zones and Bluetooth
devices the coordinator may address.

The inventory document is a JSON object with exactly three keys
(``tvs``, ``audioZones``, ``bluetoothDevices``).  It is validated once at
startup; a malformed document raises ``InventoryError`` and the coordinator
refuses to start.  Records may carry extra keys (they are passed through to
LIST_TARGETS untouched), but the top level is closed.

Usage:
    inventory = load_inventory("deploy/inventory.json")
    tv = inventory.resolve_tv("tv_living_room")     # TV or None
    inventory.snapshot()                            # LIST_TARGETS payload
"""

import json
import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .errors import InventoryError
from .schema import flatten_errors

logger = logging.getLogger(__name__)

AudioOutput = Literal["wired", "bluetooth", "both"]


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        strict=True,
        frozen=True,
    )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class TV(_Record):
    tv_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)
    player_type: str | None = None


class AudioZone(_Record):
    audio_zone_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    outputs: list[AudioOutput] = Field(min_length=1)
    endpoint: str = Field(min_length=1)


class BluetoothDevice(_Record):
    bluetooth_device_id: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    mac_address: str = Field(min_length=1)
    paired_with_zone_id: str = Field(min_length=1)


class InventoryDocument(BaseModel):
    """Top-level inventory document. Unknown top-level keys are rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        strict=True,
        frozen=True,
    )

    tvs: list[TV]
    audio_zones: list[AudioZone]
    bluetooth_devices: list[BluetoothDevice]

    @model_validator(mode="after")
    def _unique_ids(self):
        for name, records, key in (
            ("tvId", self.tvs, "tv_id"),
            ("audioZoneId", self.audio_zones, "audio_zone_id"),
            ("bluetoothDeviceId", self.bluetooth_devices, "bluetooth_device_id"),
        ):
            seen = set()
            for record in records:
                ident = getattr(record, key)
                if ident in seen:
                    raise ValueError(f"duplicate {name} '{ident}'")
                seen.add(ident)
        return self


class Inventory:
    """Read-only lookup index over a validated inventory document.

    Built once; the maps are never mutated afterwards, so concurrent
    request handlers can read them without locking.
    """

    def __init__(self, document: InventoryDocument):
        self._document = document
        self._tvs = {tv.tv_id: tv for tv in document.tvs}
        self._zones = {zone.audio_zone_id: zone for zone in document.audio_zones}
        self._bluetooth = {dev.bluetooth_device_id: dev for dev in document.bluetooth_devices}

        for dev in document.bluetooth_devices:
            if dev.paired_with_zone_id not in self._zones:
                logger.warning("Bluetooth device %s paired with unknown zone %s",
                               dev.bluetooth_device_id, dev.paired_with_zone_id)

    @classmethod
    def from_dict(cls, data) -> "Inventory":
        """Validate a parsed inventory document. Raises InventoryError."""
        try:
            document = InventoryDocument.model_validate(data)
        except ValidationError as e:
            raise InventoryError("Invalid inventory", flatten_errors(e)) from e
        return cls(document)

    # -- lookups (None means "not in inventory") --

    def resolve_tv(self, tv_id: str) -> TV | None:
        return self._tvs.get(tv_id)

    def resolve_zone(self, audio_zone_id: str) -> AudioZone | None:
        return self._zones.get(audio_zone_id)

    def resolve_bluetooth_device(self, bluetooth_device_id: str) -> BluetoothDevice | None:
        return self._bluetooth.get(bluetooth_device_id)

    @property
    def tvs(self) -> list[TV]:
        return list(self._document.tvs)

    @property
    def audio_zones(self) -> list[AudioZone]:
        return list(self._document.audio_zones)

    @property
    def bluetooth_devices(self) -> list[BluetoothDevice]:
        return list(self._document.bluetooth_devices)

    def snapshot(self) -> dict:
        """Full inventory in wire form, as returned by LIST_TARGETS."""
        return {
            "tvs": [tv.to_dict() for tv in self._document.tvs],
            "audioZones": [zone.to_dict() for zone in self._document.audio_zones],
            "bluetoothDevices": [dev.to_dict() for dev in self._document.bluetooth_devices],
        }

    def counts(self) -> dict:
        return {
            "tvs": len(self._tvs),
            "audioZones": len(self._zones),
            "bluetoothDevices": len(self._bluetooth),
        }


def load_inventory(path: str) -> Inventory:
    """Read and validate the inventory file. Raises InventoryError on any problem."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise InventoryError(f"Inventory file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise InventoryError(f"Invalid JSON in {path}: {e}") from e

    inventory = Inventory.from_dict(data)
    logger.info("Inventory loaded from %s (%d TVs, %d zones, %d bluetooth devices)",
                path, len(inventory.tvs), len(inventory.audio_zones),
                len(inventory.bluetooth_devices))
    return inventory
