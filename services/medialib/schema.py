"""Shared helpers for turning pydantic validation failures into flat error lists."""

from pydantic import ValidationError


def _field_path(loc: tuple) -> str:
    parts = []
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        else:
            parts.append(f".{item}" if parts else str(item))
    return "".join(parts) or "(root)"


def flatten_errors(exc: ValidationError) -> list[dict]:
    """One ``{field, message}`` entry per violation, in pydantic's order."""
    details = []
    for err in exc.errors(include_url=False):
        details.append({
            "field": _field_path(err.get("loc", ())),
            "message": err.get("msg", "invalid value"),
            "type": err.get("type", "value_error"),
        })
    return details
