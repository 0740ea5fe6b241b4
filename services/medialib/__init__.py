"""
Shared code for the distributed media services.

  config         — JSON config loader (``cfg``)
  inventory      — static TV / audio zone / Bluetooth catalog
  commands       — closed command schema and validation
  sessions       — in-memory session store
  dispatcher     — per-action command state machine
  device_client  — outbound JSON POSTs to device endpoints
  device_base    — shared plumbing for the device-side stub services
"""
