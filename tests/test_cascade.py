"""Tests for cascade.py — postponement proposals, overrides and confirmation."""

from dataclasses import replace
from datetime import date

import pytest

from leaguesched.cascade import (
    CascadeContext, affected_fixtures, blocking_rows, build_cascade_updates,
    clear_override, compute_cascade, confirm_cascade, recheck_cascade_row,
)
from leaguesched.dates import fixture_date, kickoff_for
from leaguesched.errors import ValidationError
from leaguesched.models import (
    CascadeFlag, Fixture, FixtureStatus, HolidayRange, Season, Team,
)
from leaguesched.store import MemoryStore

SEASON = Season("Test", date(2026, 1, 1), date(2026, 3, 31), id="s1")


def _make_fixture(fid, home, away, d, status=FixtureStatus.SCHEDULED, matchweek=1):
    return Fixture(
        season_id="s1", home_team_id=home, away_team_id=away,
        kickoff=kickoff_for(d), venue="Vilimale Turf", matchweek=matchweek,
        status=status, id=fid, home_team_name=home, away_team_name=away,
    )


def _scenario():
    """A v B on Jan 6 gets postponed; A and B each have one later fixture.

    C v D on Jan 20 is untouched but sits on the date D's fixture is
    pushed to.
    """
    return [
        _make_fixture("f0", "A", "D", date(2026, 1, 2)),
        _make_fixture("f1", "A", "B", date(2026, 1, 6)),
        _make_fixture("f2", "A", "C", date(2026, 1, 13)),
        _make_fixture("f3", "B", "D", date(2026, 1, 16)),
        _make_fixture("f4", "C", "D", date(2026, 1, 20)),
    ]


def _by_id(fixtures, fid):
    return next(f for f in fixtures if f.id == fid)


def _context(fixtures, rows, new_date=date(2026, 1, 9), holidays=(), season=SEASON):
    return CascadeContext(
        postponed=_by_id(fixtures, "f1"), new_date=new_date,
        fixtures=fixtures, holidays=list(holidays), season=season, rows=rows,
    )


def _make_store(fixtures):
    store = MemoryStore()
    store.create_season(SEASON)
    for name in "ABCD":
        store.create_team(Team(name=name, season_id="s1", id=name))
    for f in fixtures:
        store.create_fixture(f)
    return store


class TestAffectedFixtures:
    def test_only_later_fixtures_of_either_team(self):
        fixtures = _scenario()
        affected = affected_fixtures(_by_id(fixtures, "f1"), fixtures)
        assert [f.id for f in affected] == ["f2", "f3"]

    def test_completed_fixtures_not_moved(self):
        fixtures = _scenario()
        fixtures[2] = replace(fixtures[2], status=FixtureStatus.COMPLETE)
        affected = affected_fixtures(_by_id(fixtures, "f1"), fixtures)
        assert [f.id for f in affected] == ["f3"]


class TestComputeCascade:
    def test_rows_and_flags(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        assert [r.fixture_id for r in rows] == ["f2", "f3"]

        assert rows[0].proposed_date == date(2026, 1, 16)
        assert rows[0].flag == CascadeFlag.OK

        # D already plays C on Jan 20
        assert rows[1].proposed_date == date(2026, 1, 20)
        assert rows[1].flag == CascadeFlag.CONFLICT

    def test_proposed_strictly_later(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        for r in rows:
            assert r.proposed_date > r.original_date

    def test_one_slot_even_if_earlier_free(self):
        # f2 on Jan 13 moves to Jan 16, never back to a freed slot
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 27),
                               fixtures, [], SEASON)
        assert rows[0].proposed_date == date(2026, 1, 16)

    def test_no_affected_fixtures(self):
        fixtures = [_make_fixture("f1", "A", "B", date(2026, 1, 6))]
        assert compute_cascade(fixtures[0], date(2026, 1, 9), fixtures, [], SEASON) == []

    def test_holiday_adjusted(self):
        fixtures = _scenario()[1:3]
        holidays = [HolidayRange(date(2026, 1, 16), date(2026, 1, 16), "Holiday")]
        rows = compute_cascade(fixtures[0], date(2026, 1, 9), fixtures, holidays, SEASON)
        assert rows[0].proposed_date == date(2026, 1, 20)
        assert rows[0].holiday_adjusted
        assert rows[0].flag == CascadeFlag.HOLIDAY_ADJUSTED

    def test_multi_day_holiday_skips_several_slots(self):
        fixtures = _scenario()[1:3]
        holidays = [HolidayRange(date(2026, 1, 15), date(2026, 1, 21), "Week off")]
        rows = compute_cascade(fixtures[0], date(2026, 1, 9), fixtures, holidays, SEASON)
        assert rows[0].proposed_date == date(2026, 1, 23)

    def test_out_of_bounds_beats_conflict(self):
        fixtures = _scenario()
        short = replace(SEASON, end_date=date(2026, 1, 19))
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], short)
        # Jan 20 is past the end and also clashes with C v D
        assert rows[1].proposed_date == date(2026, 1, 20)
        assert rows[1].flag == CascadeFlag.OUT_OF_BOUNDS

    def test_earlier_rows_visible_to_later(self):
        # A plays twice after the postponed fixture: Jan 13 and Jan 16.
        # The first moves to Jan 16, the second to Jan 20, no clash.
        fixtures = [
            _make_fixture("f1", "A", "B", date(2026, 1, 6)),
            _make_fixture("f2", "A", "C", date(2026, 1, 13)),
            _make_fixture("f3", "A", "D", date(2026, 1, 16)),
        ]
        rows = compute_cascade(fixtures[0], date(2026, 1, 9), fixtures, [], SEASON)
        assert [r.flag for r in rows] == [CascadeFlag.OK, CascadeFlag.OK]

    def test_clash_with_earlier_row(self):
        # f2 is pushed onto Jan 20 where f3 has already been placed
        fixtures = [
            _make_fixture("f1", "A", "B", date(2026, 1, 6)),
            _make_fixture("f3", "B", "C", date(2026, 1, 13)),
            _make_fixture("f2", "A", "C", date(2026, 1, 16)),
        ]
        holidays = [HolidayRange(date(2026, 1, 16), date(2026, 1, 16), "Holiday")]
        rows = compute_cascade(fixtures[0], date(2026, 1, 9), fixtures, holidays, SEASON)
        assert rows[0].proposed_date == date(2026, 1, 20)
        assert rows[1].proposed_date == date(2026, 1, 20)
        assert rows[1].flag == CascadeFlag.CONFLICT

    def test_clash_with_postponed_new_date(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 16),
                               fixtures, [], SEASON)
        # A v C moves to Jan 16, where A now plays the postponed fixture
        assert rows[0].flag == CascadeFlag.CONFLICT


class TestRecheck:
    def test_idempotent_on_proposed_date(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        ctx = _context(fixtures, rows)
        for r in rows:
            assert recheck_cascade_row(r, r.proposed_date, ctx).flag == r.flag

    def test_idempotent_on_holiday_adjusted(self):
        fixtures = _scenario()[1:3]
        holidays = [HolidayRange(date(2026, 1, 16), date(2026, 1, 16), "Holiday")]
        rows = compute_cascade(fixtures[0], date(2026, 1, 9), fixtures, holidays, SEASON)
        ctx = CascadeContext(fixtures[0], date(2026, 1, 9), fixtures, holidays,
                             SEASON, rows)
        rechecked = recheck_cascade_row(rows[0], rows[0].proposed_date, ctx)
        assert rechecked.flag == CascadeFlag.HOLIDAY_ADJUSTED

    def test_idempotent_out_of_bounds(self):
        fixtures = _scenario()
        short = replace(SEASON, end_date=date(2026, 1, 19))
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], short)
        ctx = _context(fixtures, rows, season=short)
        assert recheck_cascade_row(rows[1], rows[1].proposed_date, ctx).flag == \
            CascadeFlag.OUT_OF_BOUNDS

    def test_override_resolves_conflict(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        row = recheck_cascade_row(rows[1], date(2026, 1, 23), _context(fixtures, rows))
        assert row.flag == CascadeFlag.OK
        assert row.override == date(2026, 1, 23)
        assert row.final_date == date(2026, 1, 23)
        assert row.proposed_date == date(2026, 1, 20)

    def test_override_snaps_to_game_day(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        # Wednesday Jan 21 -> Friday Jan 23
        row = recheck_cascade_row(rows[1], date(2026, 1, 21), _context(fixtures, rows))
        assert row.override == date(2026, 1, 23)

    def test_override_conflicts_with_postponed(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        row = recheck_cascade_row(rows[0], date(2026, 1, 9), _context(fixtures, rows))
        assert row.flag == CascadeFlag.CONFLICT

    def test_override_conflicts_with_other_row(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        # Move A v C onto Jan 20, where C v D is
        row = recheck_cascade_row(rows[0], date(2026, 1, 20), _context(fixtures, rows))
        assert row.flag == CascadeFlag.CONFLICT

    def test_override_sees_other_rows_overrides(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        ctx = _context(fixtures, rows)
        rows[1] = recheck_cascade_row(rows[1], date(2026, 1, 23), ctx)
        # B v D now sits on Jan 23; A v C there has no shared team
        assert recheck_cascade_row(rows[0], date(2026, 1, 23), ctx).flag == CascadeFlag.OK

    def test_override_onto_holiday(self):
        fixtures = _scenario()
        holidays = [HolidayRange(date(2026, 1, 27), date(2026, 1, 27), "Holiday")]
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, holidays, SEASON)
        row = recheck_cascade_row(rows[1], date(2026, 1, 27),
                                  _context(fixtures, rows, holidays=holidays))
        assert row.flag == CascadeFlag.HOLIDAY_ADJUSTED

    def test_override_past_season_end(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        row = recheck_cascade_row(rows[1], date(2026, 4, 3), _context(fixtures, rows))
        assert row.flag == CascadeFlag.OUT_OF_BOUNDS
        assert row.override == date(2026, 4, 3)

    def test_clear_override_keeps_flag(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        row = recheck_cascade_row(rows[1], date(2026, 1, 23), _context(fixtures, rows))
        cleared = clear_override(row)
        assert cleared.override is None
        assert cleared.final_date == date(2026, 1, 20)
        assert cleared.flag == CascadeFlag.OK


class TestUpdates:
    def test_blocking_rows(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        assert [r.fixture_id for r in blocking_rows(rows)] == ["f3"]

    def test_build_updates(self):
        fixtures = _scenario()
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        rows[1] = recheck_cascade_row(rows[1], date(2026, 1, 23), _context(fixtures, rows))
        updates = build_cascade_updates(_by_id(fixtures, "f1"), date(2026, 1, 9), rows)
        assert [(u.fixture_id, fixture_date(u.kickoff)) for u in updates] == [
            ("f1", date(2026, 1, 9)),
            ("f2", date(2026, 1, 16)),
            ("f3", date(2026, 1, 23)),
        ]


class TestConfirmCascade:
    def test_writes_all_rows(self):
        fixtures = _scenario()
        store = _make_store(fixtures)
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        rows[1] = recheck_cascade_row(rows[1], date(2026, 1, 23), _context(fixtures, rows))

        assert confirm_cascade(store, _by_id(fixtures, "f1"), date(2026, 1, 9), rows) == 3
        dates = {f.id: fixture_date(f.kickoff) for f in store.list_fixtures("s1")}
        assert dates == {
            "f0": date(2026, 1, 2),
            "f1": date(2026, 1, 9),
            "f2": date(2026, 1, 16),
            "f3": date(2026, 1, 23),
            "f4": date(2026, 1, 20),
        }

    def test_blocked_by_conflict(self):
        fixtures = _scenario()
        store = _make_store(fixtures)
        rows = compute_cascade(_by_id(fixtures, "f1"), date(2026, 1, 9),
                               fixtures, [], SEASON)
        with pytest.raises(ValidationError, match="conflict"):
            confirm_cascade(store, _by_id(fixtures, "f1"), date(2026, 1, 9), rows)
        assert fixture_date(store.get_fixture("f1").kickoff) == date(2026, 1, 6)

    def test_rejects_non_game_day(self):
        fixtures = _scenario()
        store = _make_store(fixtures)
        with pytest.raises(ValidationError):
            confirm_cascade(store, _by_id(fixtures, "f1"), date(2026, 1, 8), [])

    def test_postponed_only(self):
        fixtures = [_make_fixture("f1", "A", "B", date(2026, 1, 6))]
        store = _make_store(fixtures)
        assert confirm_cascade(store, fixtures[0], date(2026, 1, 9), []) == 1
        assert store.get_fixture("f1").kickoff == kickoff_for(date(2026, 1, 9))
