"""Tests for the leaguesched command line and logging setup."""

import logging
from datetime import date
from pathlib import Path

import pytest

from leaguesched import schedule
from leaguesched.dates import fixture_date
from leaguesched.logging_config import setup_logging
from leaguesched.sqlite_store import SqliteStore


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(schedule, "setup_logging", lambda level: None)


@pytest.fixture
def config_path(tmp_path):
    text = Path("config.yaml").read_text()
    text = text.replace("database: league.db", f"database: {tmp_path / 'league.db'}")
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


def _run(config_path, *argv):
    return schedule.run(["-c", str(config_path), *argv])


def _fixtures(tmp_path):
    with SqliteStore(tmp_path / "league.db") as store:
        season = store.list_seasons()[0]
        return store.list_fixtures(season.id)


class TestInit:
    def test_init(self, config_path, capsys):
        assert _run(config_path, "init") == 0
        out = capsys.readouterr().out
        assert "Created season Season 2026" in out
        assert "5 teams, 1 holiday range(s)" in out

    def test_init_twice(self, config_path, capsys):
        _run(config_path, "init")
        assert _run(config_path, "init") == 1
        assert "already exists" in capsys.readouterr().out


class TestGamedays:
    def test_enough_days(self, config_path, capsys):
        assert _run(config_path, "gamedays") == 0
        out = capsys.readouterr().out
        assert "2026-01-02 Fri" in out
        assert "25 game days; 5 teams need 19" in out

    def test_too_few_days(self, tmp_path, capsys):
        path = tmp_path / "short.yaml"
        path.write_text(
            "season:\n  name: Short\n  start_date: 2026-01-01\n  end_date: 2026-03-05\n"
            "teams: [A, B, C, D, E]\n"
        )
        assert _run(path, "gamedays") == 1
        assert "18 game days; 5 teams need 19" in capsys.readouterr().out


class TestGenerate:
    def test_generate(self, config_path, tmp_path, capsys):
        _run(config_path, "init")
        out_dir = tmp_path / "out"
        assert _run(config_path, "generate", "-o", str(out_dir)) == 0
        out = capsys.readouterr().out
        assert "Created 20 fixtures" in out
        assert "RESULT: VALID" in out
        for name in ("schedule.txt", "fixtures.csv", "validation.txt"):
            assert (out_dir / name).exists()
        assert len(_fixtures(tmp_path)) == 20

    def test_generate_before_init(self, config_path, tmp_path, capsys):
        assert _run(config_path, "generate", "-o", str(tmp_path / "out")) == 1
        assert "run 'init' first" in capsys.readouterr().out

    def test_fixture_ids(self, config_path, tmp_path, capsys):
        _run(config_path, "init")
        _run(config_path, "generate", "-o", str(tmp_path / "out"))
        capsys.readouterr()
        assert _run(config_path, "fixtures", "--ids") == 0
        out = capsys.readouterr().out
        for f in _fixtures(tmp_path):
            assert f.id in out


class TestCascadeAndMove:
    def _setup(self, config_path, tmp_path):
        _run(config_path, "init")
        _run(config_path, "generate", "-o", str(tmp_path / "out"))
        return next(f for f in _fixtures(tmp_path) if f.matchweek == 1)

    def test_preview_only(self, config_path, tmp_path, capsys):
        first = self._setup(config_path, tmp_path)
        capsys.readouterr()
        assert _run(config_path, "cascade", first.id, "2026-01-06") == 0
        assert "Preview only" in capsys.readouterr().out
        moved = next(f for f in _fixtures(tmp_path) if f.id == first.id)
        assert fixture_date(moved.kickoff) == date(2026, 1, 2)

    def test_confirm(self, config_path, tmp_path, capsys):
        first = self._setup(config_path, tmp_path)
        assert _run(config_path, "cascade", first.id, "2026-01-06", "--confirm") == 0
        assert "Rescheduled" in capsys.readouterr().out
        moved = next(f for f in _fixtures(tmp_path) if f.id == first.id)
        assert fixture_date(moved.kickoff) == date(2026, 1, 6)

    def test_non_game_day(self, config_path, tmp_path, capsys):
        first = self._setup(config_path, tmp_path)
        assert _run(config_path, "cascade", first.id, "2026-01-07") == 1
        assert "Game days are Tue and Fri only" in capsys.readouterr().out

    def test_bad_override(self, config_path, tmp_path, capsys):
        first = self._setup(config_path, tmp_path)
        assert _run(config_path, "cascade", first.id, "2026-01-06",
                    "--override", "no-date") == 1
        assert "Bad override" in capsys.readouterr().out

    def test_move(self, config_path, tmp_path, capsys):
        first = self._setup(config_path, tmp_path)
        # At most one of its two teams has the matchweek-2 bye on Jan 9
        assert _run(config_path, "move", first.id, "2026-01-09") == 1
        assert "invalid" in capsys.readouterr().out
        assert fixture_date(
            next(f for f in _fixtures(tmp_path) if f.id == first.id).kickoff
        ) == date(2026, 1, 2)


class TestVerify:
    def test_verify_generated_csv(self, config_path, tmp_path, capsys):
        _run(config_path, "init")
        _run(config_path, "generate", "-o", str(tmp_path / "out"))
        assert _run(config_path, "verify", str(tmp_path / "out" / "fixtures.csv")) == 0
        assert "RESULT: VALID" in capsys.readouterr().out

    def test_verify_missing_csv(self, config_path, tmp_path, capsys):
        assert _run(config_path, "verify", str(tmp_path / "none.csv")) == 1
        assert "not found" in capsys.readouterr().out


class TestSetupLogging:
    def test_levels(self):
        pkg = logging.getLogger("leaguesched")
        root = logging.getLogger()
        saved = (pkg.level, pkg.propagate, list(pkg.handlers), root.level, list(root.handlers))
        try:
            setup_logging("debug")
            assert pkg.level == logging.DEBUG
            assert not pkg.propagate
            assert len(pkg.handlers) == 1
            assert root.level == logging.WARNING
        finally:
            pkg.setLevel(saved[0])
            pkg.propagate = saved[1]
            pkg.handlers[:] = saved[2]
            root.setLevel(saved[3])
            root.handlers[:] = saved[4]
