# services/catalog_service.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import sqlite3
from typing import List, Optional

from domain.models import Project, Tag
from services.app_model import ModelGuard
from services.errors import StorageError


class CatalogService:
    """Projects and tags used to label focus sessions."""

    def __init__(self, guard: ModelGuard):
        self.guard = guard

    # ---- projects ----
    def list_projects(self, include_archived: bool = True) -> List[Project]:
        with self.guard.hold() as model:
            projects = model.projects.list()
        if include_archived:
            return projects
        return [p for p in projects if not p.archived]

    def upsert_project(
        self,
        name: str,
        color: Optional[str] = None,
        archived: bool = False,
        project_id: Optional[int] = None,
    ) -> Project:
        name = (name or "").strip()
        if not name:
            raise ValueError("Project name cannot be empty.")
        color = (color or "").strip() or None

        with self.guard.hold() as model:
            try:
                if project_id is None:
                    return model.projects.create(name, color, archived)
                if not model.projects.get(project_id):
                    raise ValueError("Project not found.")
                return model.projects.update(project_id, name, color, archived)
            except sqlite3.IntegrityError:
                model.db.conn.rollback()
                raise ValueError(f"A project named '{name}' already exists.")
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    # ---- tags ----
    def list_tags(self) -> List[Tag]:
        with self.guard.hold() as model:
            return model.tags.list()

    def upsert_tag(self, name: str, tag_id: Optional[int] = None) -> Tag:
        name = (name or "").strip()
        if not name:
            raise ValueError("Tag name cannot be empty.")

        with self.guard.hold() as model:
            try:
                if tag_id is None:
                    return model.tags.create(name)
                if not model.tags.get(tag_id):
                    raise ValueError("Tag not found.")
                return model.tags.rename(tag_id, name)
            except sqlite3.IntegrityError:
                model.db.conn.rollback()
                raise ValueError(f"A tag named '{name}' already exists.")
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
