"""SQLite persistence: resumes, search sessions, jobs, matches, interviews.

Jobs are keyed by URL and matches by (user, job, search), both written with
upserts so a repeated search refreshes rows instead of duplicating them.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from jobradar.log import get_logger
from jobradar.models import (
    ApplyOption,
    JobExtensions,
    JobPosting,
    ScoredPosting,
    SearchFilters,
    SearchRequest,
    SearchSession,
    SearchStrategy,
)

log = get_logger(__name__)

MATCH_STATUSES = ("new", "applied", "interviewing", "rejected", "offer")
INTERVIEW_STATUSES = ("scheduled", "completed", "cancelled")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS resumes (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    file_path TEXT NOT NULL,
    original_name TEXT NOT NULL,
    structured_data TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS job_searches (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    roles TEXT NOT NULL,
    locations TEXT NOT NULL,
    keywords TEXT NOT NULL,
    filters TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    company TEXT NOT NULL,
    location TEXT,
    description TEXT,
    url TEXT NOT NULL UNIQUE,
    source TEXT,
    posted_at TEXT,
    salary_range TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS job_matches (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    job_id TEXT NOT NULL REFERENCES jobs (id) ON DELETE CASCADE,
    search_id TEXT REFERENCES job_searches (id) ON DELETE CASCADE,
    relevance_score INTEGER,
    match_reason TEXT,
    status TEXT NOT NULL DEFAULT 'new',
    created_at TEXT NOT NULL,
    UNIQUE (user_id, job_id, search_id)
);

CREATE TABLE IF NOT EXISTS interviews (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    job_match_id TEXT REFERENCES job_matches (id) ON DELETE SET NULL,
    title TEXT NOT NULL,
    company TEXT,
    status TEXT NOT NULL DEFAULT 'scheduled',
    date TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS prep_materials (
    id TEXT PRIMARY KEY,
    interview_id TEXT NOT NULL REFERENCES interviews (id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_matches_search ON job_matches (search_id);
CREATE INDEX IF NOT EXISTS idx_searches_user ON job_searches (user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_interviews_user ON interviews (user_id, created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _new_id() -> str:
    return uuid.uuid4().hex


class JobStore:
    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.connect() as conn:
            conn.executescript(_SCHEMA)
        log.debug("Database ready at %s", self.db_path)

    # ── Resumes ──────────────────────────────────────────────────────────

    def save_resume(
        self, user_id: str, file_path: str, original_name: str, structured: dict[str, Any],
    ) -> str:
        resume_id = _new_id()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO resumes (id, user_id, file_path, original_name, structured_data, created_at)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (resume_id, user_id, file_path, original_name, json.dumps(structured), _now()),
            )
        log.info("Saved resume %s for user %s", original_name, user_id)
        return resume_id

    def latest_resume(self, user_id: str) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM resumes WHERE user_id = ? ORDER BY created_at DESC, rowid DESC LIMIT 1",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        data = dict(row)
        data["structured_data"] = json.loads(row["structured_data"])
        return data

    # ── Search sessions ──────────────────────────────────────────────────

    def create_search(self, user_id: str, request: SearchRequest) -> str:
        search_id = _new_id()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO job_searches (id, user_id, roles, locations, keywords, filters, created_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    search_id,
                    user_id,
                    json.dumps(request.roles),
                    json.dumps(request.locations),
                    json.dumps(request.keywords),
                    json.dumps(request.filters.to_dict()),
                    _now(),
                ),
            )
        return search_id

    @staticmethod
    def _session(row: sqlite3.Row) -> SearchSession:
        return SearchSession(
            id=row["id"],
            user_id=row["user_id"],
            roles=json.loads(row["roles"]),
            locations=json.loads(row["locations"]),
            keywords=json.loads(row["keywords"]),
            filters=SearchFilters.from_dict(json.loads(row["filters"] or "{}")),
            created_at=row["created_at"],
        )

    def list_searches(self, user_id: str, limit: int = 50) -> list[SearchSession]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM job_searches WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [self._session(r) for r in rows]

    def get_search(self, user_id: str, search_id: str) -> SearchSession | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM job_searches WHERE id = ? AND user_id = ?",
                (search_id, user_id),
            ).fetchone()
        return self._session(row) if row else None

    def delete_search(self, user_id: str, search_id: str) -> bool:
        with self.connect() as conn:
            cur = conn.execute(
                "DELETE FROM job_searches WHERE id = ? AND user_id = ?",
                (search_id, user_id),
            )
        return cur.rowcount > 0

    # ── Jobs & matches ───────────────────────────────────────────────────

    def upsert_job(self, posting: JobPosting) -> str:
        """Insert or refresh a job keyed by its URL; returns the row id."""
        url = posting.persist_key
        if not url:
            raise ValueError(f"Job {posting.title!r} has no URL or identifier to key on")
        with self.connect() as conn:
            [row] = conn.execute(
                "INSERT INTO jobs (id, title, company, location, description, url, source,"
                " posted_at, salary_range, created_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
                " ON CONFLICT (url) DO UPDATE SET"
                "  title = excluded.title, company = excluded.company,"
                "  location = excluded.location, description = excluded.description,"
                "  source = excluded.source,"
                "  posted_at = COALESCE(excluded.posted_at, jobs.posted_at),"
                "  salary_range = COALESCE(excluded.salary_range, jobs.salary_range)"
                " RETURNING id",
                (
                    _new_id(),
                    posting.title,
                    posting.company_name,
                    posting.location,
                    posting.description,
                    url,
                    posting.discovery_method.label,
                    posting.extensions.posted_at,
                    posting.extensions.salary,
                    _now(),
                ),
            ).fetchall()
        return row["id"]

    def get_job(self, job_id: str) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return dict(row) if row else None

    def find_job_by_url(self, url: str) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE url = ?", (url,)).fetchone()
        return dict(row) if row else None

    def upsert_match(
        self,
        user_id: str,
        job_id: str,
        score: int,
        reason: str,
        search_id: str | None,
    ) -> str:
        with self.connect() as conn:
            if search_id is None:
                # NULLs never collide under UNIQUE, so session-less matches are keyed by hand.
                existing = conn.execute(
                    "SELECT id FROM job_matches WHERE user_id = ? AND job_id = ? AND search_id IS NULL",
                    (user_id, job_id),
                ).fetchone()
                if existing:
                    conn.execute(
                        "UPDATE job_matches SET relevance_score = ?, match_reason = ? WHERE id = ?",
                        (score, reason, existing["id"]),
                    )
                    return existing["id"]
            [row] = conn.execute(
                "INSERT INTO job_matches (id, user_id, job_id, search_id, relevance_score,"
                " match_reason, status, created_at)"
                " VALUES (?, ?, ?, ?, ?, ?, 'new', ?)"
                " ON CONFLICT (user_id, job_id, search_id) DO UPDATE SET"
                "  relevance_score = excluded.relevance_score,"
                "  match_reason = excluded.match_reason"
                " RETURNING id",
                (_new_id(), user_id, job_id, search_id, score, reason, _now()),
            ).fetchall()
        return row["id"]

    def find_match(self, user_id: str, job_id: str) -> dict[str, Any] | None:
        """Most recent match of this job for the user, across sessions."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM job_matches WHERE user_id = ? AND job_id = ?"
                " ORDER BY created_at DESC, rowid DESC LIMIT 1",
                (user_id, job_id),
            ).fetchone()
        return dict(row) if row else None

    def set_match_status(self, match_id: str, status: str) -> None:
        if status not in MATCH_STATUSES:
            raise ValueError(f"Unknown match status: {status}")
        with self.connect() as conn:
            conn.execute("UPDATE job_matches SET status = ? WHERE id = ?", (status, match_id))

    def search_matches(self, user_id: str, search_id: str) -> list[ScoredPosting]:
        """Matches of one session, best first.

        Each posting is rebuilt from its jobs row: ``job_id`` and the single apply
        option are the stored URL (the posting's ``persist_key``), not the
        external id it was discovered with.
        """
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT m.relevance_score, m.match_reason, m.status, j.*"
                " FROM job_matches m JOIN jobs j ON j.id = m.job_id"
                " WHERE m.search_id = ? AND m.user_id = ?"
                " ORDER BY m.relevance_score DESC, m.created_at ASC, m.rowid ASC",
                (search_id, user_id),
            ).fetchall()

        scored: list[ScoredPosting] = []
        for r in rows:
            posting = JobPosting(
                title=r["title"],
                company_name=r["company"],
                location=r["location"] or "",
                description=r["description"] or "",
                via=r["source"] or "",
                job_id=r["url"],
                discovery_method=SearchStrategy.from_label(r["source"]),
                extensions=JobExtensions(posted_at=r["posted_at"], salary=r["salary_range"]),
                apply_options=(ApplyOption("Apply", r["url"]),),
            )
            scored.append(
                ScoredPosting(
                    posting=posting,
                    score=r["relevance_score"] or 0,
                    reason=r["match_reason"] or "",
                    store_id=r["id"],
                )
            )
        return scored

    # ── Interviews & prep ────────────────────────────────────────────────

    def create_interview(
        self, user_id: str, job_match_id: str | None, title: str, company: str | None,
    ) -> str:
        interview_id = _new_id()
        now = _now()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO interviews (id, user_id, job_match_id, title, company, status, date, created_at)"
                " VALUES (?, ?, ?, ?, ?, 'scheduled', ?, ?)",
                (interview_id, user_id, job_match_id, title, company, now, now),
            )
        return interview_id

    def save_prep_material(self, interview_id: str, kind: str, content: dict[str, Any]) -> str:
        material_id = _new_id()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO prep_materials (id, interview_id, type, content, created_at)"
                " VALUES (?, ?, ?, ?, ?)",
                (material_id, interview_id, kind, json.dumps(content), _now()),
            )
        return material_id

    def list_interviews(self, user_id: str) -> list[dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM interviews WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_interview(self, user_id: str, interview_id: str) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM interviews WHERE id = ? AND user_id = ?",
                (interview_id, user_id),
            ).fetchone()
            if row is None:
                return None
            materials = conn.execute(
                "SELECT type, content, created_at FROM prep_materials"
                " WHERE interview_id = ? ORDER BY created_at",
                (interview_id,),
            ).fetchall()
        interview = dict(row)
        interview["prep_materials"] = [
            {"type": m["type"], "content": json.loads(m["content"]), "created_at": m["created_at"]}
            for m in materials
        ]
        return interview

    def delete_interviews(self, user_id: str, interview_ids: list[str]) -> int:
        if not interview_ids:
            return 0
        marks = ", ".join("?" for _ in interview_ids)
        with self.connect() as conn:
            cur = conn.execute(
                f"DELETE FROM interviews WHERE user_id = ? AND id IN ({marks})",
                (user_id, *interview_ids),
            )
        return cur.rowcount
