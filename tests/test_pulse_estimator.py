"""Tests del estimador de pulso en tiempo real."""

from datetime import datetime

import pytest

from ct_engine.domain.scan_event import EquipmentProfile, EquipmentType
from pulse_service.estimator import PulseEstimator

EMITTED_AT = datetime(2026, 3, 10, 9, 0, 0)


@pytest.fixture
def estimator() -> PulseEstimator:
    return PulseEstimator(clock=lambda: EMITTED_AT)


@pytest.fixture
def single() -> EquipmentProfile:
    return EquipmentProfile("EQ-S", EquipmentType.SINGLE_STAGE, feed_url="http://feed/s")


@pytest.fixture
def paired() -> EquipmentProfile:
    return EquipmentProfile("EQ-P", EquipmentType.PAIRED_STAGE, feed_url="http://feed/p")


class TestSingleStage:
    def test_emits_throughput_ct(self, estimator, single, make_event):
        tail = [make_event(f"S{i}", "BCMP OK", i * 10, "EQ-S") for i in range(3)]
        pulse = estimator.process_tail(single, tail)

        assert pulse is not None
        assert pulse.ct_proceso == 10.0
        assert pulse.ct_equipo == 10.0
        assert pulse.buffer_size == 3
        assert pulse.last_serial == "S2"
        assert pulse.emitted_at == EMITTED_AT

    def test_same_tail_twice_is_suppressed(self, estimator, single, make_event):
        tail = [make_event(f"S{i}", "BCMP OK", i * 10, "EQ-S") for i in range(3)]

        assert estimator.process_tail(single, tail) is not None
        assert estimator.process_tail(single, tail) is None
        assert estimator.state_for("EQ-S").completion_times.maxlen == 30
        assert len(estimator.state_for("EQ-S").completion_times) == 3

    def test_only_newer_completions_are_added(self, estimator, single, make_event):
        tail = [make_event(f"S{i}", "BCMP OK", i * 10, "EQ-S") for i in range(3)]
        estimator.process_tail(single, tail)

        pulse = estimator.process_tail(single, tail + [make_event("S3", "BCMP OK", 35, "EQ-S")])
        assert pulse.buffer_size == 4
        assert pulse.ct_proceso == pytest.approx(35 / 3)

    def test_single_completion_has_no_ct(self, estimator, single, make_event):
        pulse = estimator.process_tail(single, [make_event("S1", "BCMP OK", 0, "EQ-S")])
        assert pulse is not None
        assert pulse.ct_proceso is None
        assert pulse.ct_equipo is None

    def test_rate_over_bound_is_dropped(self, estimator, single, make_event):
        tail = [make_event("S1", "BCMP OK", 0, "EQ-S"), make_event("S2", "BCMP OK", 700, "EQ-S")]
        pulse = estimator.process_tail(single, tail)
        assert pulse.ct_proceso is None

    def test_buffer_is_capped(self, single, make_event):
        estimator = PulseEstimator(buffer_size=30)
        tail = [make_event(f"S{i}", "BCMP OK", i * 10, "EQ-S") for i in range(40)]
        pulse = estimator.process_tail(single, tail)

        assert pulse.buffer_size == 30
        assert pulse.ct_proceso == 10.0

    def test_entries_without_completion_do_not_emit(self, estimator, single, make_event):
        assert estimator.process_tail(single, [make_event("S1", "BREQ", 0, "EQ-S")]) is None


class TestPairedStage:
    def test_equipment_ct_is_mean_of_pairs(self, estimator, paired, make_event):
        tail = [
            make_event("S1", "BREQ", 0, "EQ-P"),
            make_event("S1", "BCMP OK", 30, "EQ-P"),
            make_event("S2", "BREQ", 32, "EQ-P"),
            make_event("S2", "BCMP OK", 60, "EQ-P"),
        ]
        pulse = estimator.process_tail(paired, tail)

        assert pulse.ct_equipo == pytest.approx(29.0)
        assert pulse.ct_proceso == pytest.approx(30.0)
        assert len(estimator.state_for("EQ-P").entry_cache) == 0

    def test_entry_from_previous_poll_is_paired(self, estimator, paired, make_event):
        assert estimator.process_tail(paired, [make_event("S1", "BREQ", 0, "EQ-P")]) is None

        pulse = estimator.process_tail(paired, [make_event("S1", "BCMP OK", 45, "EQ-P")])
        assert pulse.ct_equipo == 45.0

    def test_no_pairs_gives_no_equipment_ct(self, estimator, paired, make_event):
        tail = [make_event("S1", "BCMP OK", 0, "EQ-P"), make_event("S2", "BCMP OK", 20, "EQ-P")]
        pulse = estimator.process_tail(paired, tail)

        assert pulse.ct_equipo is None
        assert pulse.ct_proceso == 20.0

    def test_pairs_over_pulse_bound_are_rejected(self, estimator, paired, make_event):
        tail = [make_event("S1", "BREQ", 0, "EQ-P"), make_event("S1", "BCMP OK", 600, "EQ-P")]
        pulse = estimator.process_tail(paired, tail)
        assert pulse.ct_equipo is None


class TestRegistration:
    def test_state_is_created_once(self, estimator, single, paired, make_event):
        estimator.register([single, paired])
        state = estimator.state_for("EQ-S")
        estimator.register([single])

        assert estimator.state_for("EQ-S") is state
        assert estimator.equipment_count == 2

    def test_states_are_independent(self, estimator, single, paired, make_event):
        estimator.process_tail(single, [make_event("S1", "BCMP OK", 0, "EQ-S")])
        pulse = estimator.process_tail(paired, [make_event("S1", "BCMP OK", 0, "EQ-P")])
        assert pulse is not None
