# league_repo.py
# Developer note:
# - The in-memory GAME_STATE is the live authority; this DB is its durable snapshot.
# - A snapshot is always written whole, in one transaction (never partial rows).
# - player_id / league_id are the portal's int ids; no DB-generated keys.
"""
LeagueRepo: durable snapshot store (SQLite)

Goal:
- save: write the full portal state into a fresh SQLite file.
- load: read it back into a state dict that passes validate_game_state().

Usage (CLI):
  python league_repo.py init --db games_league.db
  python league_repo.py validate --db games_league.db
  python league_repo.py info --db games_league.db

Python:
  from league_repo import LeagueRepo
  with LeagueRepo("games_league.db") as repo:
      repo.init_db()
      repo.write_snapshot(state)
      state2 = repo.read_snapshot()
"""

from __future__ import annotations

import argparse
import contextlib
import datetime as _dt
import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from schema import SCHEMA_VERSION
from state_schema import create_default_day_record, create_default_state, validate_game_state


# ----------------------------
# Helpers
# ----------------------------

def _utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def _json_dumps(obj: Any) -> str:
    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=str,
    )


def _json_loads(value: Any, default: Any):
    """
    Safe JSON loader:
    - None -> default
    - already dict/list -> returns as-is
    - invalid JSON -> default
    """
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def _opt_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


# ----------------------------
# Repository
# ----------------------------

class LeagueRepo:
    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        # autocommit mode; we manage BEGIN/COMMIT manually to guarantee atomic multi-table writes
        self._conn = sqlite3.connect(self.db_path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute("PRAGMA busy_timeout = 5000;")  # reduce transient 'database is locked'
        self._tx_depth = 0

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error:
            pass

    @contextlib.contextmanager
    def transaction(self, *, write: bool = True):
        """Transaction helper.

        - Outermost: BEGIN (read) or BEGIN IMMEDIATE (write) on the connection.
        - Nested: SAVEPOINT/RELEASE so callers can safely nest repo transactions.
        """
        cur = self._conn.cursor()
        depth0 = self._tx_depth
        sp_name: str | None = None
        try:
            if depth0 == 0:
                self._conn.execute("BEGIN IMMEDIATE;" if write else "BEGIN;")
            else:
                sp_name = f"sp_{depth0}"
                cur.execute(f"SAVEPOINT {sp_name};")

            self._tx_depth += 1
            try:
                yield cur
            except Exception:
                if depth0 == 0:
                    self._conn.rollback()
                else:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {sp_name};")
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
                raise
            else:
                if depth0 == 0:
                    self._conn.commit()
                else:
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            finally:
                self._tx_depth -= 1
        finally:
            cur.close()

    # ------------------------
    # Schema
    # ------------------------

    def init_db(self) -> None:
        if self._tx_depth != 0:
            # sqlite3 executescript() issues an implicit COMMIT; never run it inside an active transaction.
            raise RuntimeError("init_db() must not run inside an active transaction")
        now = _utc_now_iso()
        cur = self._conn.cursor()
        try:
            cur.executescript(
                f"""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                INSERT INTO meta(key, value) VALUES ('schema_version', '{SCHEMA_VERSION}')
                ON CONFLICT(key) DO UPDATE SET value=excluded.value;
                INSERT OR IGNORE INTO meta(key, value) VALUES ('created_at', '{now}');

                CREATE TABLE IF NOT EXISTS players (
                    player_id INTEGER PRIMARY KEY,
                    display_name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    name TEXT,
                    phone TEXT NOT NULL DEFAULT '',
                    join_day INTEGER NOT NULL,
                    active INTEGER NOT NULL DEFAULT 1,
                    archived_rounds_played INTEGER NOT NULL DEFAULT 0,
                    archived_rounds_eligible INTEGER NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS leagues (
                    league_id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    game_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    start_day INTEGER,
                    close_day INTEGER
                );

                -- Roster order is the position column (creator first, then acceptance order)
                CREATE TABLE IF NOT EXISTS league_roster (
                    league_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    player_id INTEGER NOT NULL,
                    active INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY(league_id, player_id),
                    FOREIGN KEY(league_id) REFERENCES leagues(league_id) ON DELETE CASCADE,
                    FOREIGN KEY(player_id) REFERENCES players(player_id)
                );
                CREATE INDEX IF NOT EXISTS idx_roster_league_pos ON league_roster(league_id, position);

                CREATE TABLE IF NOT EXISTS league_owners (
                    league_id INTEGER NOT NULL,
                    player_id INTEGER NOT NULL,
                    PRIMARY KEY(league_id, player_id),
                    FOREIGN KEY(league_id) REFERENCES leagues(league_id) ON DELETE CASCADE,
                    FOREIGN KEY(player_id) REFERENCES players(player_id)
                );

                CREATE TABLE IF NOT EXISTS league_email_invites (
                    league_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    email TEXT NOT NULL,
                    PRIMARY KEY(league_id, email),
                    FOREIGN KEY(league_id) REFERENCES leagues(league_id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS league_player_invites (
                    league_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    player_id INTEGER NOT NULL,
                    PRIMARY KEY(league_id, player_id),
                    FOREIGN KEY(league_id) REFERENCES leagues(league_id) ON DELETE CASCADE,
                    FOREIGN KEY(player_id) REFERENCES players(player_id)
                );

                -- Per (league, day) flags; void implies finalized
                CREATE TABLE IF NOT EXISTS league_days (
                    league_id INTEGER NOT NULL,
                    day INTEGER NOT NULL,
                    finalized INTEGER NOT NULL DEFAULT 0,
                    void INTEGER NOT NULL DEFAULT 0,
                    eligible_json TEXT NOT NULL DEFAULT '[]',
                    PRIMARY KEY(league_id, day),
                    FOREIGN KEY(league_id) REFERENCES leagues(league_id) ON DELETE CASCADE
                );

                -- score NULL = pending
                CREATE TABLE IF NOT EXISTS game_records (
                    league_id INTEGER NOT NULL,
                    day INTEGER NOT NULL,
                    player_id INTEGER NOT NULL,
                    score INTEGER,
                    report TEXT NOT NULL DEFAULT '',
                    reported INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY(league_id, day, player_id),
                    FOREIGN KEY(league_id, day) REFERENCES league_days(league_id, day) ON DELETE CASCADE,
                    FOREIGN KEY(player_id) REFERENCES players(player_id)
                );
                CREATE INDEX IF NOT EXISTS idx_game_records_player ON game_records(player_id);
                """
            )
        finally:
            cur.close()

    # ------------------------
    # Snapshot write
    # ------------------------

    def write_snapshot(self, state: Dict[str, Any]) -> None:
        """Replace every row with ``state`` in one write transaction."""
        validate_game_state(state)
        with self.transaction(write=True) as cur:
            for table in (
                "game_records",
                "league_days",
                "league_player_invites",
                "league_email_invites",
                "league_owners",
                "league_roster",
                "leagues",
                "players",
            ):
                cur.execute(f"DELETE FROM {table};")

            meta = {
                "current_day": str(int(state["current_day"])),
                "next_player_id": str(int(state["counters"]["next_player_id"])),
                "next_league_id": str(int(state["counters"]["next_league_id"])),
                "saved_at": _utc_now_iso(),
            }
            cur.executemany(
                "INSERT INTO meta(key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                list(meta.items()),
            )

            cur.executemany(
                """
                INSERT INTO players(
                    player_id, display_name, email, name, phone, join_day, active,
                    archived_rounds_played, archived_rounds_eligible
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                [
                    (
                        p["player_id"],
                        p["display_name"],
                        p["email"],
                        p["name"],
                        p["phone"],
                        p["join_day"],
                        1 if p["active"] else 0,
                        p["archived_rounds_played"],
                        p["archived_rounds_eligible"],
                    )
                    for p in state["players"].values()
                ],
            )

            for lid, league in state["leagues"].items():
                cur.execute(
                    """
                    INSERT INTO leagues(league_id, name, game_type, status, start_day, close_day)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    (lid, league["name"], league["game_type"], league["status"], league["start_day"], league["close_day"]),
                )
                cur.executemany(
                    "INSERT INTO league_roster(league_id, position, player_id, active) VALUES (?, ?, ?, ?);",
                    [
                        (lid, pos, pid, 1 if league["member_active"][pid] else 0)
                        for pos, pid in enumerate(league["roster"])
                    ],
                )
                cur.executemany(
                    "INSERT INTO league_owners(league_id, player_id) VALUES (?, ?);",
                    [(lid, pid) for pid in league["owners"]],
                )
                cur.executemany(
                    "INSERT INTO league_email_invites(league_id, position, email) VALUES (?, ?, ?);",
                    [(lid, pos, email) for pos, email in enumerate(league["email_invites"])],
                )
                cur.executemany(
                    "INSERT INTO league_player_invites(league_id, position, player_id) VALUES (?, ?, ?);",
                    [(lid, pos, pid) for pos, pid in enumerate(league["player_invites"])],
                )

            for lid, days in state["ledger"].items():
                for day, record in days.items():
                    cur.execute(
                        """
                        INSERT INTO league_days(league_id, day, finalized, void, eligible_json)
                        VALUES (?, ?, ?, ?, ?);
                        """,
                        (
                            lid,
                            day,
                            1 if record["finalized"] else 0,
                            1 if record["void"] else 0,
                            _json_dumps(list(record["eligible"])),
                        ),
                    )
                    cur.executemany(
                        """
                        INSERT INTO game_records(league_id, day, player_id, score, report, reported)
                        VALUES (?, ?, ?, ?, ?, ?);
                        """,
                        [
                            (lid, day, pid, e["score"], e["report"], 1 if e["reported"] else 0)
                            for pid, e in record["entries"].items()
                        ],
                    )

    # ------------------------
    # Snapshot read
    # ------------------------

    def _read_meta(self, cur: sqlite3.Cursor) -> Dict[str, str]:
        return {r["key"]: r["value"] for r in cur.execute("SELECT key, value FROM meta;").fetchall()}

    def read_snapshot(self) -> Dict[str, Any]:
        """Rebuild a state dict; raises ValueError if the file is not a valid snapshot."""
        with self.transaction(write=False) as cur:
            meta = self._read_meta(cur)
            if meta.get("schema_version") != SCHEMA_VERSION:
                raise ValueError(f"DB schema_version {meta.get('schema_version')!r} != expected {SCHEMA_VERSION}")
            for key in ("current_day", "next_player_id", "next_league_id"):
                if key not in meta:
                    raise ValueError(f"DB meta.{key} missing (snapshot was never written)")

            state = create_default_state(int(meta["current_day"]))
            state["counters"]["next_player_id"] = int(meta["next_player_id"])
            state["counters"]["next_league_id"] = int(meta["next_league_id"])

            for r in cur.execute("SELECT * FROM players ORDER BY player_id;").fetchall():
                pid = int(r["player_id"])
                state["players"][pid] = {
                    "player_id": pid,
                    "display_name": r["display_name"],
                    "email": r["email"],
                    "name": r["name"],
                    "phone": r["phone"],
                    "join_day": int(r["join_day"]),
                    "active": bool(r["active"]),
                    "archived_rounds_played": int(r["archived_rounds_played"]),
                    "archived_rounds_eligible": int(r["archived_rounds_eligible"]),
                }

            for r in cur.execute("SELECT * FROM leagues ORDER BY league_id;").fetchall():
                lid = int(r["league_id"])
                state["leagues"][lid] = {
                    "league_id": lid,
                    "name": r["name"],
                    "game_type": r["game_type"],
                    "status": r["status"],
                    "start_day": _opt_int(r["start_day"]),
                    "close_day": _opt_int(r["close_day"]),
                    "owners": [],
                    "roster": [],
                    "member_active": {},
                    "email_invites": [],
                    "player_invites": [],
                }

            leagues = state["leagues"]
            for r in cur.execute("SELECT * FROM league_roster ORDER BY league_id, position;").fetchall():
                league = leagues[int(r["league_id"])]
                pid = int(r["player_id"])
                league["roster"].append(pid)
                league["member_active"][pid] = bool(r["active"])
            for r in cur.execute("SELECT * FROM league_owners ORDER BY league_id, player_id;").fetchall():
                leagues[int(r["league_id"])]["owners"].append(int(r["player_id"]))
            for r in cur.execute("SELECT * FROM league_email_invites ORDER BY league_id, position;").fetchall():
                leagues[int(r["league_id"])]["email_invites"].append(r["email"])
            for r in cur.execute("SELECT * FROM league_player_invites ORDER BY league_id, position;").fetchall():
                leagues[int(r["league_id"])]["player_invites"].append(int(r["player_id"]))

            ledger = state["ledger"]
            for r in cur.execute("SELECT * FROM league_days ORDER BY league_id, day;").fetchall():
                record = create_default_day_record()
                record["finalized"] = bool(r["finalized"])
                record["void"] = bool(r["void"])
                record["eligible"] = [int(x) for x in _json_loads(r["eligible_json"], [])]
                ledger.setdefault(int(r["league_id"]), {})[int(r["day"])] = record
            for r in cur.execute("SELECT * FROM game_records ORDER BY league_id, day, player_id;").fetchall():
                record = ledger[int(r["league_id"])][int(r["day"])]
                record["entries"][int(r["player_id"])] = {
                    "score": _opt_int(r["score"]),
                    "report": r["report"],
                    "reported": bool(r["reported"]),
                }

        validate_game_state(state)
        return state

    def get_summary(self) -> Dict[str, Any]:
        with self.transaction(write=False) as cur:
            meta = self._read_meta(cur)
            counts = {
                table: int(cur.execute(f"SELECT COUNT(*) AS c FROM {table};").fetchone()["c"])
                for table in ("players", "leagues", "league_days", "game_records")
            }
        return {"db_path": self.db_path, "meta": meta, "counts": counts}

    def validate_integrity(self) -> None:
        """Fail fast when the file does not round-trip into a valid state."""
        self.read_snapshot()

    # ------------------------
    # Convenience
    # ------------------------

    def __enter__(self) -> "LeagueRepo":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ----------------------------
# CLI
# ----------------------------

def _cmd_init(args) -> None:
    with LeagueRepo(args.db) as repo:
        repo.init_db()
    print(f"OK: initialized {args.db}")

def _cmd_validate(args) -> None:
    with LeagueRepo(args.db) as repo:
        repo.validate_integrity()
    print(f"OK: validation passed for {args.db}")

def _cmd_info(args) -> None:
    with LeagueRepo(args.db) as repo:
        print(_json_dumps(repo.get_summary()))

def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="LeagueRepo (SQLite portal snapshots)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="initialize DB schema")
    p_init.add_argument("--db", required=True, help="path to sqlite db file")
    p_init.set_defaults(func=_cmd_init)

    p_val = sub.add_parser("validate", help="check the snapshot loads into a valid state")
    p_val.add_argument("--db", required=True, help="path to sqlite db file")
    p_val.set_defaults(func=_cmd_validate)

    p_info = sub.add_parser("info", help="print meta and row counts")
    p_info.add_argument("--db", required=True, help="path to sqlite db file")
    p_info.set_defaults(func=_cmd_info)

    args = p.parse_args(argv)
    args.func(args)

if __name__ == "__main__":
    main()
