"""SQLite database layer for AI configs, stored listings, and search runs."""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from jobpipe.core.schemas import (
    AggregationResult,
    AIConfig,
    AIProvider,
    ClassificationVerdict,
    CanonicalListing,
    SearchCriteria,
)

_AI_CONFIGS_TABLE = """
CREATE TABLE IF NOT EXISTS ai_configs (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id          TEXT    NOT NULL,
    provider         TEXT    NOT NULL,
    model            TEXT    NOT NULL,
    endpoint         TEXT,
    credential       TEXT,
    is_active        INTEGER NOT NULL DEFAULT 0,
    last_selected_at TEXT    NOT NULL,
    created_at       TEXT    NOT NULL
);
"""

# Storage-level guard for the one-active-config-per-user rule.
_AI_CONFIGS_ACTIVE_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS ux_ai_configs_one_active
    ON ai_configs (user_id) WHERE is_active = 1;
"""

_LISTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS listings (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id        TEXT    NOT NULL UNIQUE,
    source             TEXT    NOT NULL,
    title              TEXT    NOT NULL,
    company            TEXT    NOT NULL DEFAULT '',
    location           TEXT    NOT NULL DEFAULT '',
    description        TEXT    NOT NULL DEFAULT '',
    url                TEXT    NOT NULL DEFAULT '',
    published_date     TEXT,
    salary             TEXT,
    job_type           TEXT,
    metadata_json      TEXT    NOT NULL DEFAULT '{}',
    is_relevant        INTEGER,
    confidence_score   REAL,
    urgency_score      REAL,
    quality_score      REAL,
    keywords_json      TEXT,
    user_id            TEXT,
    saved_at           TEXT    NOT NULL
);
"""

_SEARCH_RUNS_TABLE = """
CREATE TABLE IF NOT EXISTS search_runs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    keywords        TEXT NOT NULL,
    location        TEXT,
    sources_json    TEXT NOT NULL,
    errors_json     TEXT NOT NULL,
    total_count     INTEGER NOT NULL,
    listing_count   INTEGER NOT NULL,
    started_at      TEXT NOT NULL,
    finished_at     TEXT NOT NULL
);
"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection.

    The connection may be shared across threads; callers serialize writes.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False, timeout=10.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_AI_CONFIGS_TABLE)
    conn.execute(_AI_CONFIGS_ACTIVE_INDEX)
    conn.execute(_LISTINGS_TABLE)
    conn.execute(_SEARCH_RUNS_TABLE)
    conn.commit()
    return conn


# ---------------------------------------------------------------------------
# AI configs
# ---------------------------------------------------------------------------


def _to_ai_config(row: sqlite3.Row) -> AIConfig:
    return AIConfig(
        id=row["id"],
        user_id=row["user_id"],
        provider=AIProvider(row["provider"]),
        model=row["model"],
        endpoint=row["endpoint"],
        credential=row["credential"],
        is_active=bool(row["is_active"]),
        last_selected_at=datetime.fromisoformat(row["last_selected_at"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def insert_ai_config(
    conn: sqlite3.Connection,
    user_id: str,
    provider: AIProvider,
    model: str,
    endpoint: str | None = None,
    credential: str | None = None,
) -> AIConfig:
    """Insert an inactive configuration and return it."""
    now = utcnow().isoformat()
    cursor = conn.execute(
        """
        INSERT INTO ai_configs
            (user_id, provider, model, endpoint, credential, is_active,
             last_selected_at, created_at)
        VALUES (?, ?, ?, ?, ?, 0, ?, ?)
        """,
        (user_id, provider.value, model, endpoint, credential, now, now),
    )
    conn.commit()
    row = conn.execute(
        "SELECT * FROM ai_configs WHERE id = ?", (cursor.lastrowid,)
    ).fetchone()
    return _to_ai_config(row)


def get_ai_config(
    conn: sqlite3.Connection, user_id: str, config_id: int
) -> AIConfig | None:
    row = conn.execute(
        "SELECT * FROM ai_configs WHERE id = ? AND user_id = ?",
        (config_id, user_id),
    ).fetchone()
    return _to_ai_config(row) if row is not None else None


def list_ai_configs(conn: sqlite3.Connection, user_id: str) -> list[AIConfig]:
    """Return a user's configurations, most recently selected first."""
    rows = conn.execute(
        """
        SELECT * FROM ai_configs WHERE user_id = ?
        ORDER BY last_selected_at DESC, id DESC
        """,
        (user_id,),
    ).fetchall()
    return [_to_ai_config(r) for r in rows]


def get_active_ai_config(conn: sqlite3.Connection, user_id: str) -> AIConfig | None:
    row = conn.execute(
        "SELECT * FROM ai_configs WHERE user_id = ? AND is_active = 1",
        (user_id,),
    ).fetchone()
    return _to_ai_config(row) if row is not None else None


def activate_ai_config(
    conn: sqlite3.Connection, user_id: str, config_id: int
) -> AIConfig | None:
    """Make one configuration the user's only active one, in one transaction.

    Returns None (and changes nothing) if the config is not owned by the user.
    """
    now = utcnow().isoformat()
    conn.execute("BEGIN IMMEDIATE")
    try:
        owned = conn.execute(
            "SELECT 1 FROM ai_configs WHERE id = ? AND user_id = ?",
            (config_id, user_id),
        ).fetchone()
        if owned is None:
            conn.rollback()
            return None
        conn.execute(
            "UPDATE ai_configs SET is_active = 0 WHERE user_id = ? AND id != ?",
            (user_id, config_id),
        )
        conn.execute(
            """
            UPDATE ai_configs SET is_active = 1, last_selected_at = ?
            WHERE id = ? AND user_id = ?
            """,
            (now, config_id, user_id),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return get_ai_config(conn, user_id, config_id)


def deactivate_ai_config(
    conn: sqlite3.Connection, user_id: str, config_id: int
) -> AIConfig | None:
    cursor = conn.execute(
        "UPDATE ai_configs SET is_active = 0 WHERE id = ? AND user_id = ?",
        (config_id, user_id),
    )
    conn.commit()
    if cursor.rowcount == 0:
        return None
    return get_ai_config(conn, user_id, config_id)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def insert_listing(
    conn: sqlite3.Connection,
    listing: CanonicalListing,
    verdict: ClassificationVerdict | None = None,
    user_id: str | None = None,
) -> bool:
    """Insert a listing, ignoring it if external_id already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    try:
        conn.execute(
            """
            INSERT INTO listings
                (external_id, source, title, company, location, description, url,
                 published_date, salary, job_type, metadata_json,
                 is_relevant, confidence_score, urgency_score, quality_score,
                 keywords_json, user_id, saved_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                listing.external_id,
                listing.source.value,
                listing.title,
                listing.company,
                listing.location,
                listing.description,
                listing.url,
                listing.published_date.isoformat() if listing.published_date else None,
                listing.salary,
                listing.job_type,
                json.dumps(listing.metadata, default=str),
                int(verdict.is_relevant) if verdict else None,
                verdict.confidence_score if verdict else None,
                verdict.urgency_score if verdict else None,
                verdict.quality_score if verdict else None,
                json.dumps(verdict.extracted_keywords) if verdict else None,
                user_id,
                utcnow().isoformat(),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        # Release the implicit transaction the failed INSERT opened.
        conn.rollback()
        return False


def is_listing_stored(conn: sqlite3.Connection, external_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM listings WHERE external_id = ? LIMIT 1", (external_id,)
    ).fetchone()
    return row is not None


# ---------------------------------------------------------------------------
# Search runs
# ---------------------------------------------------------------------------


def insert_search_run(
    conn: sqlite3.Connection,
    criteria: SearchCriteria,
    result: AggregationResult,
    started_at: datetime,
    finished_at: datetime,
) -> int:
    """Record a completed aggregation. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO search_runs
            (keywords, location, sources_json, errors_json, total_count,
             listing_count, started_at, finished_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            criteria.keywords,
            criteria.location,
            json.dumps(sorted(s.value for s in result.requested_sources)),
            json.dumps({s.value: r for s, r in result.source_errors.items()}),
            result.total_count,
            len(result.listings),
            started_at.isoformat(),
            finished_at.isoformat(),
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0
