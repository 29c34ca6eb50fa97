from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from utils.mining_service import (
    DEFAULT_MINING_RATES,
    ProgressSnapshot,
    compute_progress,
    default_rate,
    rate_for,
    segment_points,
)

T = datetime(2025, 3, 1, 12, 0, 0)


def make_session(hours=1, multiplier=1, points='0', segment_offset=0):
    return SimpleNamespace(
        mining_start_time=T,
        current_multiplier_start_time=T + timedelta(seconds=segment_offset),
        multiplier=multiplier,
        selected_hour_target=hours,
        current_mining_points=Decimal(points),
    )


def at(seconds):
    return T + timedelta(seconds=seconds)


class TestRateTable:

    def test_default_table_matches_fallback(self):
        for level, entry in DEFAULT_MINING_RATES.items():
            assert entry['rate'] == default_rate(level)
            assert entry['hourlyReward'] == default_rate(level) * 3600

    def test_level_one_is_one_hundredth_per_second(self):
        assert rate_for(1) == Decimal('0.01')
        assert DEFAULT_MINING_RATES[1]['hourlyReward'] == Decimal('36')

    def test_missing_entry_falls_back(self):
        table = {1: {'rate': 0.5}}
        assert rate_for(1, table) == Decimal('0.5')
        assert rate_for(3, table) == Decimal('0.03')

    def test_string_keys_from_json_config(self):
        assert rate_for(2, {'2': {'rate': 0.25, 'hourlyReward': 900}}) == Decimal('0.25')


class TestComputeProgress:

    def test_midway_progress(self):
        snapshot = compute_progress(make_session(), DEFAULT_MINING_RATES, at(1800))
        assert snapshot.points == Decimal('18.00')
        assert snapshot.elapsed == 1800
        assert snapshot.remaining == 1800
        assert snapshot.percent == pytest.approx(50.0)
        assert snapshot.complete is False

    def test_idempotent_for_same_now(self):
        session = make_session(hours=2, multiplier=3, points='4.5', segment_offset=600)
        first = compute_progress(session, DEFAULT_MINING_RATES, at(2000))
        second = compute_progress(session, DEFAULT_MINING_RATES, at(2000))
        assert first == second
        assert session.current_mining_points == Decimal('4.5')

    def test_monotonic_without_upgrade(self):
        session = make_session(hours=1, multiplier=2)
        previous = Decimal('-1')
        for seconds in range(0, 5000, 137):
            points = compute_progress(session, DEFAULT_MINING_RATES, at(seconds)).points
            assert points >= previous
            previous = points

    def test_points_stop_at_target_duration(self):
        session = make_session(hours=1, multiplier=1)
        at_end = compute_progress(session, DEFAULT_MINING_RATES, at(3600))
        much_later = compute_progress(session, DEFAULT_MINING_RATES, at(3600 * 5))
        assert at_end.points == much_later.points == Decimal('36.00')
        assert much_later.elapsed == 3600
        assert much_later.remaining == 0
        assert much_later.percent == 100.0
        assert much_later.complete is True

    def test_late_segment_is_capped_at_session_end(self):
        # 1h session, upgraded 1x -> 2x at 59 minutes, polled 10 minutes after the upgrade
        session = make_session(hours=1, multiplier=2, points='35.40', segment_offset=3540)
        assert segment_points(session, DEFAULT_MINING_RATES, at(3600 + 600)) == Decimal('1.20')

        snapshot = compute_progress(session, DEFAULT_MINING_RATES, at(3600 + 600))
        assert snapshot.points == Decimal('36.60')
        assert snapshot.complete is True

    def test_whole_seconds_only(self):
        session = make_session()
        snapshot = compute_progress(session, DEFAULT_MINING_RATES, T + timedelta(seconds=10, milliseconds=900))
        assert snapshot.elapsed == 10
        assert snapshot.points == Decimal('0.10')

    def test_before_start_reports_nothing(self):
        snapshot = compute_progress(make_session(), DEFAULT_MINING_RATES, at(-30))
        assert snapshot.points == Decimal('0')
        assert snapshot.elapsed == 0
        assert snapshot.remaining == 3600

    def test_configured_rates_are_used(self):
        table = {1: {'rate': Decimal('0.02'), 'hourlyReward': Decimal('72')}}
        snapshot = compute_progress(make_session(), table, at(100))
        assert snapshot.points == Decimal('2.00')

    def test_snapshot_serialises_points_as_string(self):
        payload = ProgressSnapshot(Decimal('1.5'), 10, 20, 33.3, False).to_dict()
        assert payload == {
            'currentPoints': '1.5',
            'timeElapsed': 10,
            'timeRemaining': 20,
            'progress': 33.3,
            'isComplete': False,
        }
