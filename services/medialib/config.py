"""
Shared configuration loader for the distributed media services.

Loads a single JSON config file per host.  Search order:
  1. $DM_CONFIG                              (explicit override)
  2. /etc/distributed-media/config.json      (deployed)
  3. config.json                             (CWD — handy for local dev)
  4. ../../config/default.json               (repo fallback)

Ports can still be overridden per process with the PORT environment
variable (see ``service_port``).

Usage:
    from medialib.config import cfg

    port           = cfg("coordinator", "port", default=8080)
    inventory_path = cfg("coordinator", "inventory_path")
    parser         = cfg("parser")  # returns the whole dict
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

_SEARCH_PATHS = [
    "/etc/distributed-media/config.json",
    "config.json",
    os.path.join(REPO_ROOT, "config", "default.json"),
]

_PORT_SECTIONS = ("coordinator", "tv_player", "audio_zone", "parser", "stt")


def _search_paths() -> list[str]:
    override = os.environ.get("DM_CONFIG")
    if override:
        return [override] + _SEARCH_PATHS
    return list(_SEARCH_PATHS)


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    for section in _PORT_SECTIONS:
        port = (config.get(section) or {}).get("port")
        if port is not None and not (isinstance(port, int) and 0 < port < 65536):
            logger.warning("Config %s: %s.port '%s' is not a valid TCP port", path, section, port)
    coordinator = config.get("coordinator") or {}
    if not coordinator.get("inventory_path"):
        logger.warning("Config %s: missing coordinator.inventory_path — using deploy/inventory.json", path)
    stt = config.get("stt") or {}
    if stt and not (stt.get("whisper_binary") and stt.get("whisper_model")):
        logger.warning("Config %s: stt section without whisper_binary/whisper_model — /transcribe will fail", path)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _search_paths():
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.warning("No config.json found — using empty config")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("parser")                      → config["parser"]
    cfg("coordinator", "port")         → config["coordinator"]["port"]
    cfg("stt", "threads", default=4)   → config["stt"]["threads"] or 4
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def service_port(section: str, default: int) -> int:
    """Listening port for a service: $PORT wins, then config, then *default*."""
    env_port = os.environ.get("PORT", "").strip()
    if env_port:
        return int(env_port)
    return int(cfg(section, "port", default=default))


def resolve_path(path: str) -> str:
    """Resolve a config-relative path against the repository root."""
    if os.path.isabs(path):
        return path
    return os.path.join(REPO_ROOT, path)


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
