import threading

import pytest

import state
from errors import SNAPSHOT_IO, PortalError
from league_repo import LeagueRepo, main as repo_main


def _populate(started_league) -> None:
    league_id, alice, bob = started_league
    state.register_game_report(100, league_id, alice, "1. e4")
    state.register_day_results(100, league_id, [10, 20])
    state.increment_day()
    state.void_day_results(101, league_id)
    state.invite_player_to_league(league_id, "later@example.com")
    carol = state.create_player("Carol", "carol@example.com", "Carol Danvers", "+44 20 7946 0000")
    state.invite_player_to_league(league_id, "carol@example.com")
    state.create_league(carol, "Wordle Club", "WORDLE")
    state.set_league_player_inactive(league_id, bob)


def test_save_erase_load_round_trip(tmp_path, started_league) -> None:
    _populate(started_league)
    before = state.export_full_state_snapshot()
    path = tmp_path / "portal.db"

    assert state.save_portal_data(str(path)) == str(path)
    assert path.exists()
    assert [p.name for p in tmp_path.iterdir()] == ["portal.db"]

    state.erase_portal_data()
    assert state.get_player_ids() == []

    state.load_portal_data(str(path))
    assert state.export_full_state_snapshot() == before


def test_concurrent_saves_to_one_path(tmp_path, started_league) -> None:
    _populate(started_league)
    before = state.export_full_state_snapshot()
    path = str(tmp_path / "portal.db")
    errors = []

    def worker() -> None:
        for _ in range(5):
            try:
                state.save_portal_data(path)
            except PortalError as exc:
                errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert [p.name for p in tmp_path.iterdir()] == ["portal.db"]
    state.erase_portal_data()
    state.load_portal_data(path)
    assert state.export_full_state_snapshot() == before


def test_save_overwrites_existing_snapshot(tmp_path, started_league) -> None:
    path = tmp_path / "portal.db"
    state.save_portal_data(str(path))
    state.create_player("Carol", "carol@example.com")
    state.save_portal_data(str(path))

    state.erase_portal_data()
    state.load_portal_data(str(path))
    assert len(state.get_player_ids()) == 3


def test_load_missing_file_keeps_state(tmp_path, started_league) -> None:
    before = state.export_full_state_snapshot()
    with pytest.raises(PortalError) as exc:
        state.load_portal_data(str(tmp_path / "missing.db"))
    assert exc.value.code == SNAPSHOT_IO
    assert state.export_full_state_snapshot() == before
    assert not (tmp_path / "missing.db").exists()


def test_load_garbage_file_keeps_state(tmp_path, started_league) -> None:
    path = tmp_path / "garbage.db"
    path.write_bytes(b"this is not a sqlite database, just some bytes" * 20)
    before = state.export_full_state_snapshot()
    with pytest.raises(PortalError) as exc:
        state.load_portal_data(str(path))
    assert exc.value.code == SNAPSHOT_IO
    assert state.export_full_state_snapshot() == before


def test_load_schema_without_snapshot_fails(tmp_path) -> None:
    path = tmp_path / "empty.db"
    with LeagueRepo(path) as repo:
        repo.init_db()
    with pytest.raises(PortalError) as exc:
        state.load_portal_data(str(path))
    assert exc.value.code == SNAPSHOT_IO


def test_save_to_missing_directory_fails(tmp_path, started_league) -> None:
    before = state.export_full_state_snapshot()
    with pytest.raises(PortalError) as exc:
        state.save_portal_data(str(tmp_path / "no" / "such" / "dir" / "portal.db"))
    assert exc.value.code == SNAPSHOT_IO
    assert state.export_full_state_snapshot() == before


def test_repo_summary_and_cli(tmp_path, started_league, capsys) -> None:
    path = tmp_path / "portal.db"
    state.save_portal_data(str(path))

    with LeagueRepo(path) as repo:
        summary = repo.get_summary()
    assert summary["counts"]["players"] == 2
    assert summary["counts"]["leagues"] == 1
    assert summary["meta"]["current_day"] == "100"

    repo_main(["validate", "--db", str(path)])
    assert "validation passed" in capsys.readouterr().out


def test_repo_transaction_rolls_back(tmp_path) -> None:
    path = tmp_path / "tx.db"
    with LeagueRepo(path) as repo:
        repo.init_db()
        with pytest.raises(RuntimeError):
            with repo.transaction() as cur:
                cur.execute("INSERT INTO meta(key, value) VALUES ('scratch', 'x');")
                raise RuntimeError("abort")
        row = repo._conn.execute("SELECT value FROM meta WHERE key='scratch';").fetchone()
    assert row is None
