"""
Tests for the Repartition Engine

Tests cover:
- Équilibré distribution
- Juste-à-temps distribution
- PEPS distribution
- Manual plan validation
- RepartitionEngine over a schedule source
"""

from datetime import date, datetime, time, timezone

import pytest

from planitrad.schedulers.calendrier import CalendrierOuvrable
from planitrad.schedulers.errors import (
    CapacityExceededError,
    DeadlineUnreachableError,
    NoBusinessDayError,
)
from planitrad.schedulers.horaire import WorkingWindow, parse_horaire
from planitrad.schedulers.repartition import (
    AllocationEntry,
    OptionsJusteATemps,
    RepartitionEngine,
    capacite_libre,
    juste_a_temps,
    repartition_equilibree,
    repartition_peps,
    valider_repartition,
)
from planitrad.schedulers.segments import SegmentKind

from conftest import make_segment


# =============================================================================
# Équilibré
# =============================================================================

class TestRepartitionEquilibree:
    """Tests for the even distribution."""

    def test_full_business_week(self, window):
        plan = repartition_equilibree(20, date(2025, 12, 8), date(2025, 12, 12), window)

        assert len(plan) == 5
        assert [entry.hours for entry in plan] == [4.0] * 5
        assert plan.total_hours == 20
        assert plan[0].start_clock == time(8)
        assert plan[0].end_clock == time(12)

    def test_range_spanning_weekend(self, window):
        plan = repartition_equilibree(15, date(2025, 12, 8), date(2025, 12, 16), window)

        assert len(plan) == 7
        assert all(entry.date.weekday() < 5 for entry in plan)
        assert abs(sum(entry.hours for entry in plan) - 15) < 1e-4
        assert plan[0].hours == pytest.approx(2.1429)
        assert plan[-1].hours == pytest.approx(2.1426)
        assert plan.dates == sorted(plan.dates)

    def test_every_entry_within_capacity(self, window):
        plan = repartition_equilibree(33.3, date(2025, 12, 1), date(2025, 12, 12), window)

        assert all(entry.hours <= window.daily_capacity_hours for entry in plan)
        assert abs(plan.total_hours - 33.3) < 1e-4

    def test_idempotent(self, window):
        first = repartition_equilibree(15, date(2025, 12, 8), date(2025, 12, 16), window)
        second = repartition_equilibree(15, date(2025, 12, 8), date(2025, 12, 16), window)

        assert first == second

    def test_holidays_excluded(self, window):
        calendrier = CalendrierOuvrable.federal()

        plan = repartition_equilibree(
            12, date(2025, 12, 22), date(2025, 12, 26), window, calendrier
        )

        assert plan.dates == [date(2025, 12, 22), date(2025, 12, 23), date(2025, 12, 24)]
        assert [entry.hours for entry in plan] == [4.0, 4.0, 4.0]

    def test_no_business_day(self, window):
        with pytest.raises(NoBusinessDayError):
            repartition_equilibree(5, date(2025, 12, 13), date(2025, 12, 14), window)

    def test_capacity_exceeded_names_date(self, window):
        with pytest.raises(CapacityExceededError) as exc_info:
            repartition_equilibree(40, date(2025, 12, 8), date(2025, 12, 12), window)

        assert exc_info.value.date == date(2025, 12, 8)
        assert exc_info.value.shortfall == pytest.approx(1.0)

    def test_occupied_hours_reduce_capacity(self, window):
        with pytest.raises(CapacityExceededError) as exc_info:
            repartition_equilibree(
                20, date(2025, 12, 8), date(2025, 12, 12), window,
                occupes=[make_segment("8h", "12h", jour=date(2025, 12, 10), source_id="tache-1")],
            )

        assert exc_info.value.date == date(2025, 12, 10)

    def test_invalid_inputs(self, window):
        with pytest.raises(ValueError):
            repartition_equilibree(0, date(2025, 12, 8), date(2025, 12, 12), window)
        with pytest.raises(ValueError):
            repartition_equilibree(5, date(2025, 12, 12), date(2025, 12, 8), window)
        with pytest.raises(ValueError):
            repartition_equilibree(
                5, date(2025, 12, 8), date(2025, 12, 12), WorkingWindow(time(8), time(16), 0)
            )

    def test_packing_skips_occupied_time(self, window):
        tache = make_segment("8h", "10h", jour=date(2025, 12, 8), source_id="tache-1")

        plan = repartition_equilibree(
            10, date(2025, 12, 8), date(2025, 12, 9), window, occupes=[tache]
        )

        assert [(entry.start_clock, entry.end_clock) for entry in plan] == [
            (time(10), time(15)), (time(8), time(13))
        ]


# =============================================================================
# Juste-à-temps
# =============================================================================

class TestJusteATemps:
    """Tests for the back-loaded distribution."""

    def test_deadline_scenario(self, window):
        plan = juste_a_temps(
            14, datetime(2025, 12, 23, 16, 0), window,
            options=OptionsJusteATemps(mode_timestamp=True),
        )

        assert plan.dates == [date(2025, 12, 22), date(2025, 12, 23)]
        assert [entry.hours for entry in plan] == [7.0, 7.0]
        assert plan[-1].end_clock == time(16)
        assert plan[-1].start_clock == time(9)
        assert plan.total_hours == 14

    def test_aware_deadline_is_localized(self, window):
        plan = juste_a_temps(
            14, datetime(2025, 12, 23, 21, 0, tzinfo=timezone.utc), window,
            options=OptionsJusteATemps(mode_timestamp=True),
        )

        assert plan.dates == [date(2025, 12, 22), date(2025, 12, 23)]
        assert plan[-1].end_clock == time(16)

    def test_deadline_clock_cuts_the_day(self):
        window = parse_horaire("9h-17h")

        plan = juste_a_temps(
            5, datetime(2025, 12, 17, 12, 0), window,
            options=OptionsJusteATemps(mode_timestamp=True),
        )

        assert plan.dates == [date(2025, 12, 16), date(2025, 12, 17)]
        tuesday, wednesday = plan
        assert (tuesday.hours, tuesday.start_clock, tuesday.end_clock) == (2.0, time(15), time(17))
        assert (wednesday.hours, wednesday.start_clock, wednesday.end_clock) == (3.0, time(9), time(12))

    def test_packing_skips_pause(self):
        window = parse_horaire("9h-17h")

        plan = juste_a_temps(5, date(2025, 12, 17), window)

        assert len(plan) == 1
        # 13h-17h then 11h-12h
        assert plan[0].start_clock == time(11)
        assert plan[0].end_clock == time(17)

    def test_livraison_matinale_caps_deadline_day(self):
        window = parse_horaire("9h-17h")

        plan = juste_a_temps(
            5, datetime(2025, 12, 17, 12, 0), window,
            options=OptionsJusteATemps(mode_timestamp=True, livraison_matinale=True),
        )

        assert [entry.hours for entry in plan] == [3.0, 2.0]
        assert plan[-1].start_clock == time(10)

    def test_weekend_deadline_starts_friday(self, window):
        plan = juste_a_temps(10, date(2025, 12, 13), window)

        assert plan.dates == [date(2025, 12, 11), date(2025, 12, 12)]
        assert [entry.hours for entry in plan] == [3.0, 7.0]

    def test_blackout_reduces_deadline_day(self, window):
        blackout = make_segment(
            "13h", "16h", SegmentKind.BLACKOUT, jour=date(2025, 12, 23), source_id="blocage-1"
        )

        plan = juste_a_temps(
            14, datetime(2025, 12, 23, 16, 0), window, occupes=[blackout],
            options=OptionsJusteATemps(mode_timestamp=True),
        )

        assert plan.dates == [date(2025, 12, 19), date(2025, 12, 22), date(2025, 12, 23)]
        assert [entry.hours for entry in plan] == [3.0, 7.0, 4.0]
        assert plan[-1].end_clock == time(13)

    def test_lookback_exhausted(self, window):
        with pytest.raises(DeadlineUnreachableError) as exc_info:
            juste_a_temps(
                20, date(2025, 12, 23), window, options=OptionsJusteATemps(max_lookback=2)
            )

        assert exc_info.value.remaining_hours == pytest.approx(6.0)

    def test_floor_date(self, window):
        with pytest.raises(DeadlineUnreachableError) as exc_info:
            juste_a_temps(
                14, date(2025, 12, 23), window,
                options=OptionsJusteATemps(date_plancher=date(2025, 12, 23)),
            )

        assert exc_info.value.remaining_hours == pytest.approx(7.0)

    def test_sum_preserved_with_fractions(self, window):
        plan = juste_a_temps(17.3333, date(2025, 12, 23), window)

        assert abs(plan.total_hours - 17.3333) < 1e-4
        assert all(entry.hours <= 7.0 for entry in plan)

    def test_task_after_deadline_clock_leaves_morning_free(self, window):
        tache = make_segment("13h", "16h", jour=date(2025, 12, 9), source_id="tache-2")

        plan = juste_a_temps(
            2, datetime(2025, 12, 9, 10, 0), window, occupes=[tache],
            options=OptionsJusteATemps(mode_timestamp=True),
        )

        assert [(e.date, e.hours, e.start_clock, e.end_clock) for e in plan] == [
            (date(2025, 12, 9), 2.0, time(8), time(10))
        ]

    def test_zero_lookback_is_honoured(self, window):
        with pytest.raises(DeadlineUnreachableError) as exc_info:
            juste_a_temps(
                5, date(2025, 12, 23), window, options=OptionsJusteATemps(max_lookback=0)
            )

        assert exc_info.value.remaining_hours == pytest.approx(5.0)


# =============================================================================
# PEPS
# =============================================================================

class TestRepartitionPeps:
    """Tests for the front-loaded distribution."""

    def test_fills_earliest_days(self, window):
        plan = repartition_peps(10, date(2025, 12, 8), date(2025, 12, 12), window)

        assert plan.dates == [date(2025, 12, 8), date(2025, 12, 9)]
        assert [entry.hours for entry in plan] == [7.0, 3.0]
        assert plan[0].start_clock == time(8)

    def test_skips_full_days(self, window):
        plan = repartition_peps(
            5, date(2025, 12, 8), date(2025, 12, 12), window,
            occupes=[make_segment("8h", "15h", jour=date(2025, 12, 8), source_id="tache-1")],
        )

        assert plan.dates == [date(2025, 12, 9)]

    def test_leftover_raises(self, window):
        with pytest.raises(CapacityExceededError) as exc_info:
            repartition_peps(40, date(2025, 12, 8), date(2025, 12, 12), window)

        assert exc_info.value.date == date(2025, 12, 12)
        assert exc_info.value.shortfall == pytest.approx(5.0)


# =============================================================================
# Validation and capacity
# =============================================================================

class TestValidation:
    """Tests for manual plan validation."""

    def test_valid_plan(self, window):
        entries = [AllocationEntry(date(2025, 12, 8), 4.0), AllocationEntry(date(2025, 12, 9), 3.0)]

        result = valider_repartition(entries, 7.0, window)

        assert result.valide
        assert result.erreurs == []

    def test_invalid_plan_reports_every_error(self, window):
        entries = [AllocationEntry(date(2025, 12, 8), 8.0), AllocationEntry(date(2025, 12, 9), -1.0)]

        result = valider_repartition(entries, 10.0, window)

        assert not result.valide
        assert len(result.erreurs) == 3

    def test_occupied_hours_counted(self, window):
        entries = [AllocationEntry(date(2025, 12, 8), 4.0)]

        result = valider_repartition(
            entries, 4.0, window, heures_occupees={date(2025, 12, 8): 5.0}
        )

        assert not result.valide
        assert "2025-12-08" in result.erreurs[0]

    def test_capacite_libre(self, window):
        occupe = make_segment("9h", "12h")

        assert capacite_libre(window, [occupe]) == pytest.approx(4.0)
        assert capacite_libre(window, [occupe], jusqua=10.0) == pytest.approx(1.0)
        assert capacite_libre(window, []) == pytest.approx(7.0)


# =============================================================================
# Engine
# =============================================================================

class TestRepartitionEngine:
    """Tests for RepartitionEngine with a schedule source."""

    def test_juste_a_temps_uses_existing_segments(self, make_source):
        tache = make_segment("9h", "12h", jour=date(2025, 12, 22), source_id="tache-1")
        engine = RepartitionEngine(make_source([tache]))

        plan = engine.repartition_juste_a_temps(
            "trad-1", 14, datetime(2025, 12, 23, 16, 0), OptionsJusteATemps(mode_timestamp=True)
        )

        assert plan.dates == [date(2025, 12, 19), date(2025, 12, 22), date(2025, 12, 23)]
        assert [entry.hours for entry in plan] == [3.0, 4.0, 7.0]
        assert plan[1].start_clock == time(12)

    def test_calendar_comes_from_source(self, make_source):
        engine = RepartitionEngine(make_source(calendrier=CalendrierOuvrable.federal()))

        plan = engine.repartition_equilibree("trad-1", 8, date(2025, 12, 24), date(2025, 12, 29))

        assert plan.dates == [date(2025, 12, 24), date(2025, 12, 29)]

    def test_peps_counts_occupied_hours(self, make_source):
        tache = make_segment("8h", "14h", jour=date(2025, 12, 8), source_id="tache-1")
        engine = RepartitionEngine(make_source([tache]))

        plan = engine.repartition_peps("trad-1", 4, date(2025, 12, 8), date(2025, 12, 12))

        assert [(entry.date, entry.hours) for entry in plan] == [
            (date(2025, 12, 8), 1.0), (date(2025, 12, 9), 3.0)
        ]
        assert plan[0].start_clock == time(14)

    def test_validation_ignores_task_being_edited(self, make_source):
        tache = make_segment("8h", "14h", jour=date(2025, 12, 8), source_id="tache-1")
        engine = RepartitionEngine(make_source([tache]))
        entries = [AllocationEntry(date(2025, 12, 8), 6.0)]

        assert not engine.valider_repartition("trad-1", entries, 6.0).valide
        assert engine.valider_repartition(
            "trad-1", entries, 6.0, ignorer_source_id="tache-1"
        ).valide

    def test_requires_source(self):
        with pytest.raises(RuntimeError):
            RepartitionEngine().repartition_juste_a_temps("trad-1", 5, date(2025, 12, 23))
