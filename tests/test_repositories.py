"""Tests de los repositorios SQL (engine mockeado)."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from ct_engine.domain.scan_event import EquipmentType
from ct_engine.domain.shift_calendar import ShiftWindow
from ct_engine.domain.snapshot import MetricsSnapshot, PulseSnapshot, WindowKind
from ct_engine.infrastructure.schema import MIGRATIONS_DIR, ensure_schema, load_statements
from ct_engine.repositories import (
    EquipmentRepository,
    MetricsRepository,
    RawScanRepository,
    ScanRepository,
)
from ct_engine.repositories.metrics_repository import window_params


@pytest.fixture
def engine():
    """Engine mockeado: connect()/begin() devuelven la misma conexión."""
    eng = MagicMock()
    conn = MagicMock()
    eng.connect.return_value.__enter__.return_value = conn
    eng.begin.return_value.__enter__.return_value = conn
    eng.conn = conn
    return eng


class TestEquipmentRepository:
    def test_list_active_feeds(self, engine):
        engine.conn.execute.return_value.mappings.return_value.all.return_value = [
            {"equipment_id": "EQ-1", "csv_url": "http://feed/1", "design_ct": 12, "equipment_type": "BCMP_ONLY"},
            {"equipment_id": "EQ-2", "csv_url": "http://feed/2", "design_ct": None, "equipment_type": "BREQ_BCMP"},
        ]

        profiles = EquipmentRepository(engine).list_active_feeds()

        assert [p.equipment_id for p in profiles] == ["EQ-1", "EQ-2"]
        assert profiles[0].equipment_type is EquipmentType.SINGLE_STAGE
        assert profiles[0].design_ct == 12.0
        assert profiles[1].equipment_type is EquipmentType.PAIRED_STAGE
        assert profiles[1].design_ct is None
        assert profiles[1].feed_url == "http://feed/2"

        sql = str(engine.conn.execute.call_args.args[0])
        assert "is_active" in sql and "csv_url IS NOT NULL" in sql


class TestScanRepository:
    def test_get_scans_since(self, engine):
        ts = datetime(2026, 3, 10, 8, 0, 0)
        engine.conn.execute.return_value.fetchall.return_value = [("SN1", "BCMP OK", ts)]

        events = ScanRepository(engine).get_scans_since("EQ-1", ts)

        assert len(events) == 1
        assert events[0].equipment_id == "EQ-1"
        assert events[0].serial_number == "SN1"
        assert events[0].timestamp == ts
        params = engine.conn.execute.call_args.args[1]
        assert params == {"equipment_id": "EQ-1", "since": ts}
        assert "ORDER BY scanned_at ASC" in str(engine.conn.execute.call_args.args[0])

    def test_profiles_default_to_paired(self, engine):
        engine.conn.execute.return_value.mappings.return_value.all.return_value = [
            {"equipment_id": "EQ-9", "equipment_type": "BREQ_BCMP", "design_ct": None},
        ]
        profiles = ScanRepository(engine).list_equipment_profiles()

        assert profiles[0].equipment_type is EquipmentType.PAIRED_STAGE
        assert "COALESCE(ed.equipment_type, 'BREQ_BCMP')" in str(engine.conn.execute.call_args.args[0])


class TestRawScanRepository:
    def test_counts_inserted_and_duplicates(self, engine, make_event):
        engine.conn.execute.side_effect = [MagicMock(rowcount=1), MagicMock(rowcount=0)]
        events = [make_event("S1", "BREQ", 0), make_event("S1", "BCMP OK", 10)]

        assert RawScanRepository(engine).insert_batch(events) == (1, 1)
        sql = str(engine.conn.execute.call_args_list[0].args[0])
        assert "ON CONFLICT (equipment_id, serial_number, scanned_at) DO NOTHING" in sql

    def test_empty_batch_skips_db(self, engine):
        assert RawScanRepository(engine).insert_batch([]) == (0, 0)
        engine.begin.assert_not_called()


class TestMetricsRepository:
    def _snap(self, equipment_id: str, window: WindowKind, ct: float) -> MetricsSnapshot:
        return MetricsSnapshot(equipment_id=equipment_id, window=window, ct_equipo=ct, pieces_ok=3)

    def test_window_params(self):
        shift_window = ShiftWindow("1st Shift", datetime(2026, 3, 10, 7, 0))
        params = window_params(
            "EQ-1",
            self._snap("EQ-1", WindowKind.HOUR, 10.0),
            self._snap("EQ-1", WindowKind.SHIFT, 11.0),
            shift_window,
        )
        assert params["ct_equipo_hour"] == 10.0
        assert params["ct_equipo_shift"] == 11.0
        assert params["pieces_ok_shift"] == 3
        assert params["shift_name"] == "1st Shift"
        assert params["shift_start"] == datetime(2026, 3, 10, 7, 0)

    def test_window_params_rejects_mixed_equipment(self):
        with pytest.raises(ValueError):
            window_params(
                "EQ-1",
                self._snap("EQ-1", WindowKind.HOUR, 10.0),
                self._snap("EQ-2", WindowKind.SHIFT, 11.0),
                ShiftWindow("1st Shift", datetime(2026, 3, 10, 7, 0)),
            )

    def test_upsert_realtime(self, engine):
        pulse = PulseSnapshot(
            equipment_id="EQ-1",
            ct_equipo=10.0,
            ct_proceso=11.0,
            last_serial="SN1",
            last_observed_at=datetime(2026, 3, 10, 8, 0, 0),
            buffer_size=5,
            emitted_at=datetime(2026, 3, 10, 8, 0, 3),
        )
        MetricsRepository(engine).upsert_realtime(pulse)

        sql, params = engine.conn.execute.call_args.args
        assert "ON CONFLICT (equipment_id) DO UPDATE" in str(sql)
        assert params["last_serial"] == "SN1"
        assert params["realtime_at"] == pulse.emitted_at


class TestSchema:
    def test_migration_statements(self):
        statements = load_statements(MIGRATIONS_DIR / "postgres_001.sql")
        assert len(statements) == 4
        assert any("raw_scans" in s and "UNIQUE" in s for s in statements)

    def test_ensure_schema_executes_all(self, engine):
        ensure_schema(engine)
        assert engine.conn.execute.call_count == 4
