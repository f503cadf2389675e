"""Clasificación de tokens de status de escaneo.

Los equipos reportan el status como texto libre ("BREQ", "BCMP OK",
"BCMP NG", "Processed OK", ...). Los cuatro predicados son independientes:
un token puede ser completion y NG a la vez.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

ENTRY_TOKEN = "BREQ"


class EventKind(Enum):
    ENTRY = "entry"
    COMPLETION_OK = "completion_ok"
    COMPLETION_NG = "completion_ng"
    OTHER = "other"


def normalize_status(status: Optional[str]) -> str:
    return (status or "").strip().upper()


def is_entry(status: Optional[str]) -> bool:
    return normalize_status(status) == ENTRY_TOKEN


def is_completion(status: Optional[str]) -> bool:
    s = normalize_status(status)
    if not s:
        return False
    return s.startswith("BCMP") or "PROCESSED" in s or "COMPLETE" in s


def is_ok(status: Optional[str]) -> bool:
    s = normalize_status(status)
    if not s:
        return False
    return "OK" in s or ("PROCESSED" in s and "FAIL" not in s and "NG" not in s)


def is_ng(status: Optional[str]) -> bool:
    s = normalize_status(status)
    if not s:
        return False
    return "NG" in s or "FAIL" in s


def classify(status: Optional[str]) -> EventKind:
    if is_entry(status):
        return EventKind.ENTRY
    if is_completion(status):
        return EventKind.COMPLETION_NG if is_ng(status) else EventKind.COMPLETION_OK
    return EventKind.OTHER
