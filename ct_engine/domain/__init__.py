"""Modelos de dominio del motor de CT."""

from .classification import EventKind, classify, is_completion, is_entry, is_ng, is_ok
from .scan_event import EquipmentProfile, EquipmentType, ScanEvent
from .shift_calendar import DEFAULT_SHIFTS, ShiftCalendar, ShiftDefinition, ShiftWindow
from .snapshot import MetricsSnapshot, PulseSnapshot, WindowKind

__all__ = [
    "EventKind",
    "classify",
    "is_completion",
    "is_entry",
    "is_ng",
    "is_ok",
    "EquipmentProfile",
    "EquipmentType",
    "ScanEvent",
    "DEFAULT_SHIFTS",
    "ShiftCalendar",
    "ShiftDefinition",
    "ShiftWindow",
    "MetricsSnapshot",
    "PulseSnapshot",
    "WindowKind",
]
