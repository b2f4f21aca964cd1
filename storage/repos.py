# storage/repos.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json
import time
from typing import Any, List, Optional, Tuple

from domain.models import AnalyticsRange, Phase, Project, SessionRecord, Tag
from storage.db import Database


def _now_ts() -> int:
    return int(time.time())


class AppStateRepo:
    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.conn.execute(
            "SELECT value FROM app_state WHERE key=?",
            (key,),
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str, commit: bool = True) -> None:
        self.db.conn.execute(
            """
            INSERT INTO app_state(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, value),
        )
        if commit:
            self.db.conn.commit()

    # ---- json blobs ----
    def get_json(self, key: str) -> Optional[Any]:
        """Raises ValueError if the stored blob is not valid JSON."""
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any, commit: bool = True) -> None:
        self.set(key, json.dumps(value), commit=commit)


def _session_from_row(r, tag_ids: List[int]) -> SessionRecord:
    return SessionRecord(
        id=r["id"],
        started_at=r["started_at"],
        ended_at=r["ended_at"],
        phase=Phase.parse(r["phase"]),
        duration_sec=r["duration_sec"],
        completed=r["completed"] == 1,
        interruptions=r["interruptions"],
        project_id=r["project_id"],
        tag_ids=tuple(tag_ids),
    )


class SessionRepo:
    def __init__(self, db: Database):
        self.db = db

    def insert(self, record: SessionRecord, commit: bool = True) -> SessionRecord:
        # context ids may point at rows deleted since the phase started
        project_id = record.project_id
        if project_id is not None and not self._exists("projects", project_id):
            project_id = None

        cur = self.db.conn.execute(
            """
            INSERT INTO sessions(
                started_at, ended_at, phase, duration_sec,
                completed, interruptions, project_id
            )
            VALUES(?,?,?,?,?,?,?)
            """,
            (
                record.started_at,
                record.ended_at,
                record.phase.value,
                record.duration_sec,
                1 if record.completed else 0,
                record.interruptions,
                project_id,
            ),
        )
        sid = cur.lastrowid
        tag_ids: List[int] = []
        for tag_id in record.tag_ids:
            if tag_id in tag_ids or not self._exists("tags", tag_id):
                continue
            self.db.conn.execute(
                "INSERT OR IGNORE INTO session_tags(session_id, tag_id) VALUES(?,?)",
                (sid, tag_id),
            )
            tag_ids.append(tag_id)
        if commit:
            self.db.conn.commit()

        return SessionRecord(
            id=sid,
            started_at=record.started_at,
            ended_at=record.ended_at,
            phase=record.phase,
            duration_sec=record.duration_sec,
            completed=record.completed,
            interruptions=record.interruptions,
            project_id=project_id,
            tag_ids=tuple(tag_ids),
        )

    def _exists(self, table: str, row_id: int) -> bool:
        r = self.db.conn.execute(
            f"SELECT 1 FROM {table} WHERE id=?",
            (row_id,),
        ).fetchone()
        return bool(r)

    def tags_for(self, session_id: int) -> List[int]:
        rows = self.db.conn.execute(
            "SELECT tag_id FROM session_tags WHERE session_id=? ORDER BY tag_id",
            (session_id,),
        ).fetchall()
        return [r["tag_id"] for r in rows]

    def query(self, rng: AnalyticsRange) -> List[SessionRecord]:
        """Sessions matching the range, newest first (by ended_at)."""
        sql, params = self._build_query(rng)
        rows = self.db.conn.execute(sql, params).fetchall()
        return [_session_from_row(r, self.tags_for(r["id"])) for r in rows]

    @staticmethod
    def _build_query(rng: AnalyticsRange) -> Tuple[str, List[int]]:
        sql = """
            SELECT id, started_at, ended_at, phase, duration_sec,
                   completed, interruptions, project_id
            FROM sessions WHERE 1 = 1
        """
        params: List[int] = []
        if rng.from_ts is not None:
            sql += " AND ended_at >= ?"
            params.append(rng.from_ts)
        if rng.to_ts is not None:
            sql += " AND ended_at <= ?"
            params.append(rng.to_ts)
        if rng.project_id is not None:
            sql += " AND project_id = ?"
            params.append(rng.project_id)
        if rng.tag_id is not None:
            sql += """
              AND EXISTS (
                SELECT 1 FROM session_tags st
                WHERE st.session_id = sessions.id AND st.tag_id = ?
              )
            """
            params.append(rng.tag_id)
        sql += " ORDER BY ended_at DESC, id DESC"
        return sql, params


class ProjectRepo:
    def __init__(self, db: Database):
        self.db = db

    def list(self) -> List[Project]:
        rows = self.db.conn.execute(
            """
            SELECT id, name, color, archived FROM projects
            ORDER BY archived ASC, name ASC
            """
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def get(self, project_id: int) -> Optional[Project]:
        r = self.db.conn.execute(
            "SELECT id, name, color, archived FROM projects WHERE id=?",
            (project_id,),
        ).fetchone()
        return self._from_row(r) if r else None

    def create(self, name: str, color: Optional[str], archived: bool) -> Project:
        cur = self.db.conn.execute(
            "INSERT INTO projects(name, color, archived, created_at) VALUES(?,?,?,?)",
            (name, color, 1 if archived else 0, _now_ts()),
        )
        self.db.conn.commit()
        return self.get(cur.lastrowid)

    def update(
        self, project_id: int, name: str, color: Optional[str], archived: bool
    ) -> Optional[Project]:
        self.db.conn.execute(
            "UPDATE projects SET name=?, color=?, archived=? WHERE id=?",
            (name, color, 1 if archived else 0, project_id),
        )
        self.db.conn.commit()
        return self.get(project_id)

    @staticmethod
    def _from_row(r) -> Project:
        return Project(
            id=r["id"], name=r["name"], color=r["color"], archived=r["archived"] == 1
        )


class TagRepo:
    def __init__(self, db: Database):
        self.db = db

    def list(self) -> List[Tag]:
        rows = self.db.conn.execute(
            "SELECT id, name FROM tags ORDER BY name ASC"
        ).fetchall()
        return [Tag(id=r["id"], name=r["name"]) for r in rows]

    def get(self, tag_id: int) -> Optional[Tag]:
        r = self.db.conn.execute(
            "SELECT id, name FROM tags WHERE id=?",
            (tag_id,),
        ).fetchone()
        return Tag(id=r["id"], name=r["name"]) if r else None

    def create(self, name: str) -> Tag:
        cur = self.db.conn.execute(
            "INSERT INTO tags(name, created_at) VALUES(?,?)",
            (name, _now_ts()),
        )
        self.db.conn.commit()
        return self.get(cur.lastrowid)

    def rename(self, tag_id: int, name: str) -> Optional[Tag]:
        self.db.conn.execute(
            "UPDATE tags SET name=? WHERE id=?",
            (name, tag_id),
        )
        self.db.conn.commit()
        return self.get(tag_id)
