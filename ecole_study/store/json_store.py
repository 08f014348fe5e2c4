# ecole_study/store/json_store.py
"""
File-backed stores for offline use: lessons come from a JSON file shaped like
the `lessons` table, attempts are appended to a second JSON file.
"""
import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from ecole_study.domain.errors import NotFound, StoreError
from ecole_study.domain.models import AttemptRecord, Lesson, LessonSummary
from ecole_study.domain.parsing import parse_lesson_row, parse_summary_row

logger = logging.getLogger(__name__)


class JsonLessonStore:
    def __init__(self, lessons_path: str, attempts_path: Optional[str] = None, user_id: Optional[str] = None):
        self.lessons_path = lessons_path
        self.attempts_path = attempts_path
        self.user_id = user_id
        self._write_lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.lessons_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Fichier de leçons illisible: {e}") from e
        if isinstance(data, list):
            return {"lessons": data, "lesson_progress": []}
        return data

    def current_user_id(self) -> Optional[str]:
        return self.user_id

    def get_profile_name(self, user_id: str) -> Optional[str]:
        for p in self._load().get("users_profiles", []):
            if str(p.get("id")) == str(user_id):
                return p.get("full_name")
        return None

    def get_lesson(self, lesson_id: str) -> Lesson:
        for row in self._load().get("lessons", []):
            if str(row.get("id")) == str(lesson_id):
                return parse_lesson_row(row)
        raise NotFound(f"Leçon introuvable: {lesson_id}")

    def list_subject_lessons(self, subject: str, user_id: Optional[str] = None) -> List[LessonSummary]:
        data = self._load()
        completed = {}
        if user_id:
            completed = {
                str(p["lesson_id"]): bool(p.get("completed"))
                for p in data.get("lesson_progress", [])
                if str(p.get("user_id")) == str(user_id) and p.get("lesson_id") is not None
            }
        return [
            parse_summary_row(row, completed.get(str(row.get("id")), False))
            for row in data.get("lessons", [])
            if row.get("subject") == subject and row.get("is_published")
        ]

    def list_tutor_lessons(self, tutor_id: str) -> List[LessonSummary]:
        rows = [r for r in self._load().get("lessons", []) if str(r.get("tutor_id")) == str(tutor_id)]
        rows.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
        return [parse_summary_row(r) for r in rows]

    def set_published(self, lesson_id: str, published: bool):
        with self._write_lock:
            data = self._load()
            row = self._find_row(data, lesson_id)
            row["is_published"] = published
            self._save(data)

    def delete_lesson(self, lesson_id: str):
        with self._write_lock:
            data = self._load()
            self._find_row(data, lesson_id)
            data["lessons"] = [r for r in data.get("lessons", []) if str(r.get("id")) != str(lesson_id)]
            self._save(data)

    def _find_row(self, data: Dict[str, Any], lesson_id: str) -> Dict[str, Any]:
        for row in data.get("lessons", []):
            if str(row.get("id")) == str(lesson_id):
                return row
        raise NotFound(f"Leçon introuvable: {lesson_id}")

    def _save(self, data: Dict[str, Any]):
        try:
            with open(self.lessons_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4, ensure_ascii=False)
        except OSError as e:
            raise StoreError(f"Écriture impossible: {e}") from e

    def record_attempt(self, record: AttemptRecord):
        if not self.attempts_path:
            raise StoreError("Aucun fichier de tentatives configuré")
        with self._write_lock:
            attempts = self.list_attempts()
            attempts.append(record.to_row())
            try:
                with open(self.attempts_path, "w", encoding="utf-8") as f:
                    json.dump(attempts, f, indent=4, ensure_ascii=False)
            except OSError as e:
                raise StoreError(f"Écriture impossible: {e}") from e

    def list_attempts(self) -> List[Dict[str, Any]]:
        if not self.attempts_path or not os.path.exists(self.attempts_path):
            return []
        try:
            with open(self.attempts_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Fichier de tentatives illisible: {e}") from e
