# Distributed Media
# Copyright (C) 2024-2026 Distributed Media contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Error taxonomy for the coordinator.

Every ``CoordinatorError`` is a caller error with an HTTP status; the
coordinator's error middleware turns it into ``{"error": ...}``.  Anything
else (including ``DeviceCallError``) falls through to the catch-all 500.
"""


class CoordinatorError(Exception):
    """A command the coordinator refuses, reported with ``status``."""

    status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class CommandValidationError(CoordinatorError):
    """Command payload failed the closed schema. ``details`` lists every violation."""

    def __init__(self, details: list[dict]):
        super().__init__("Invalid command")
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class UnknownTargetError(CoordinatorError):
    """A referenced TV, zone or Bluetooth device is not in the inventory."""

    def __init__(self, field: str, value: str):
        super().__init__(f"Unknown {field}: {value}")
        self.field = field
        self.value = value


class MissingFieldError(CoordinatorError):
    """A field the action needs was not supplied."""


class SessionNotFoundError(CoordinatorError):
    status = 404

    def __init__(self, session_id: str):
        super().__init__("Session not found")
        self.session_id = session_id


class PairingMismatchError(CoordinatorError):
    """Bluetooth device is paired with a different zone than requested."""

    def __init__(self):
        super().__init__("Bluetooth device is not paired with the requested zone")


class DeviceCallError(Exception):
    """Outbound request to a TV or audio zone could not be completed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Device call to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class InventoryError(Exception):
    """Inventory document is missing or malformed. Fatal at startup."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []
