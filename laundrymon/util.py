from __future__ import annotations


def fmt_bool(value) -> str:
    """Render a bool the way the status protocol spells it."""
    return "true" if value else "false"
