"""SQLite vote store: one row per participant name."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from poll.models import Vote, combined_slots

logger = logging.getLogger(__name__)

# `slots` is the combined primary+secondary list of the older single-list
# schema; it is still written so older readers keep working.
_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS votes (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT    NOT NULL COLLATE NOCASE,
    email           TEXT,
    slots           TEXT    NOT NULL DEFAULT '[]',
    primary_slots   TEXT    NOT NULL DEFAULT '[]',
    secondary_slots TEXT    NOT NULL DEFAULT '[]',
    ip              TEXT,
    user_agent      TEXT,
    created_at      TEXT    DEFAULT CURRENT_TIMESTAMP,
    updated_at      TEXT    DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(name COLLATE NOCASE)
);
"""

_MIGRATIONS = [
    ("primary_slots", "ALTER TABLE votes ADD COLUMN primary_slots TEXT NOT NULL DEFAULT '[]'"),
    ("secondary_slots", "ALTER TABLE votes ADD COLUMN secondary_slots TEXT NOT NULL DEFAULT '[]'"),
]

# Keyed on the case-insensitive name: the first spelling and created_at stay,
# everything else is overwritten by the latest submission.
_UPSERT_SQL = """
INSERT INTO votes
    (name, email, slots, primary_slots, secondary_slots, ip, user_agent,
     created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(name COLLATE NOCASE) DO UPDATE SET
    email           = excluded.email,
    slots           = excluded.slots,
    primary_slots   = excluded.primary_slots,
    secondary_slots = excluded.secondary_slots,
    ip              = excluded.ip,
    user_agent      = excluded.user_agent,
    updated_at      = excluded.updated_at
"""


class StoreError(Exception):
    """A vote could not be written to the store."""
    pass


def _now() -> str:
    # UTC, same clock as the CURRENT_TIMESTAMP column defaults
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _decode_slots(raw: str | None, column: str, name: str) -> list[str]:
    """Decode a JSON slot list. Anything unreadable counts as no selection."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Unreadable %s for voter %r, treating as empty", column, name)
        return []
    if not isinstance(value, list):
        logger.warning("Non-list %s for voter %r, treating as empty", column, name)
        return []
    return [str(slot) for slot in value]


def _row_to_vote(row: sqlite3.Row) -> Vote:
    name = row["name"]
    return Vote(
        id=row["id"],
        name=name,
        email=row["email"] or "",
        primary_slots=_decode_slots(row["primary_slots"], "primary_slots", name),
        secondary_slots=_decode_slots(row["secondary_slots"], "secondary_slots", name),
        ip=row["ip"] or "",
        user_agent=row["user_agent"] or "",
        created_at=row["created_at"] or "",
        updated_at=row["updated_at"] or "",
    )


class VoteStore:
    """Durable vote table backed by a single SQLite file.

    Each operation opens its own connection, so a store can be created per
    request. Writes are single statements and therefore atomic; two writes
    under the same name resolve to whichever commits last.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(_SCHEMA_SQL)
            # Migrate: databases from the single-list schema lack the split columns
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(votes)")}
            for column, sql in _MIGRATIONS:
                if column not in columns:
                    logger.info("Adding column votes.%s", column)
                    conn.execute(sql)

    # ─── Writes ───

    def save_vote(
        self,
        name: str,
        email: str,
        primary_slots: list[str],
        secondary_slots: list[str],
        ip: str,
        user_agent: str,
    ) -> Vote:
        """Insert a vote, or overwrite the one stored under the same name.

        Names are compared case-insensitively after trimming, so "Anna" and
        " ANNA " refer to the same voter.

        Returns:
            The vote as stored after the write.

        Raises:
            StoreError: If the database rejects the write
        """
        name = name.strip()
        combined = combined_slots(primary_slots, secondary_slots)
        now = _now()
        try:
            with self._connect() as conn:
                conn.execute(_UPSERT_SQL, (
                    name,
                    email.strip(),
                    json.dumps(combined),
                    json.dumps(list(primary_slots)),
                    json.dumps(list(secondary_slots)),
                    ip,
                    user_agent,
                    now,
                    now,
                ))
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save vote for {name!r}: {e}") from e

        vote = self.get_voter_by_name(name)
        if vote is None:
            raise StoreError(f"Vote for {name!r} missing after save")
        return vote

    # ─── Reads ───

    def get_voter_by_name(self, name: str) -> Vote | None:
        """Find a vote by participant name (trimmed, case-insensitive)."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM votes WHERE name = ? COLLATE NOCASE",
                (name.strip(),),
            ).fetchone()
        return _row_to_vote(row) if row else None

    def get_all_votes(self) -> list[Vote]:
        """All votes, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM votes ORDER BY created_at ASC, id ASC"
            ).fetchall()
        return [_row_to_vote(row) for row in rows]

    def count_votes(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM votes").fetchone()[0]
