"""Scenario inputs parsing and profile detection."""

from __future__ import annotations

import json
import logging

from app.utils.kademe import KADEME_KEYS

logger = logging.getLogger(__name__)


def safe_parse_inputs(raw) -> dict:
    """Return the inputs document as a dict; malformed payloads become ``{}``."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Discarding unparseable inputs_json (%d bytes)", len(raw))
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def is_headquarter_scenario(inputs) -> bool:
    """A headquarter (merkez) scenario has every grade band disabled."""
    data = safe_parse_inputs(inputs)
    temel = data.get("temelBilgiler")
    kademeler = temel.get("kademeler") if isinstance(temel, dict) else None
    if not isinstance(kademeler, dict):
        return False
    return all(
        isinstance(kademeler.get(key), dict) and kademeler[key].get("enabled") is False
        for key in KADEME_KEYS
    )
