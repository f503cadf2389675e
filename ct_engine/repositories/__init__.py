from .equipment_repository import EquipmentRepository
from .metrics_repository import MetricsRepository
from .scan_repository import RawScanRepository, ScanRepository

__all__ = [
    "EquipmentRepository",
    "MetricsRepository",
    "RawScanRepository",
    "ScanRepository",
]
