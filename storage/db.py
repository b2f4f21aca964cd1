#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sqlite3


class Database:
    def __init__(self, db_path: str = "pomodoro.db"):
        self.db_path = db_path
        # shared by the ticker, listener and UI threads; callers serialize access
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")

    def _table_exists(self, name: str) -> bool:
        r = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (name,),
        ).fetchone()
        return bool(r)

    def init_schema(self):
        cur = self.conn.cursor()

        # --- key/value JSON blobs (settings, timer state) ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS app_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                color TEXT,
                archived INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL
            );
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS tags (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                created_at INTEGER NOT NULL
            );
        """)

        # --- sessions ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                started_at INTEGER NOT NULL,
                ended_at INTEGER NOT NULL,
                phase TEXT NOT NULL,
                duration_sec INTEGER NOT NULL,
                completed INTEGER NOT NULL,
                interruptions INTEGER NOT NULL DEFAULT 0,
                project_id INTEGER,
                FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE SET NULL
            );
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS session_tags (
                session_id INTEGER NOT NULL,
                tag_id INTEGER NOT NULL,
                PRIMARY KEY (session_id, tag_id),
                FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE,
                FOREIGN KEY(tag_id) REFERENCES tags(id) ON DELETE CASCADE
            );
        """)

        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_ended_at ON sessions(ended_at);"
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_project_id ON sessions(project_id);"
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_session_tags_tag_id ON session_tags(tag_id);"
        )

        self.conn.commit()

    def wipe(self):
        """Delete every row, key/value blobs included, and restart the id counters."""
        with self.conn:
            self.conn.execute("DELETE FROM session_tags")
            self.conn.execute("DELETE FROM sessions")
            self.conn.execute("DELETE FROM projects")
            self.conn.execute("DELETE FROM tags")
            self.conn.execute("DELETE FROM app_state")
            if self._table_exists("sqlite_sequence"):
                self.conn.execute(
                    "DELETE FROM sqlite_sequence WHERE name IN ('projects', 'tags', 'sessions')"
                )

    def close(self):
        self.conn.close()
