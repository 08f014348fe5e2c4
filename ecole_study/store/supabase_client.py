# ecole_study/store/supabase_client.py
"""
Lesson and attempt stores over the Supabase REST API (PostgREST).
"""
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ecole_study.domain.errors import NotFound, StoreError
from ecole_study.domain.models import AttemptRecord, Lesson, LessonSummary
from ecole_study.domain.parsing import parse_lesson_row, parse_summary_row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupabaseConfig:
    url: str
    anon_key: str
    access_token: str = ""
    timeout_sec: float = 15.0

    @staticmethod
    def from_env() -> "SupabaseConfig":
        return SupabaseConfig(
            url=os.environ.get("SUPABASE_URL", "").strip().rstrip("/"),
            anon_key=os.environ.get("SUPABASE_ANON_KEY", "").strip(),
            access_token=os.environ.get("SUPABASE_ACCESS_TOKEN", "").strip(),
            timeout_sec=float(os.environ.get("SUPABASE_TIMEOUT", "15")),
        )


class SupabaseClient:
    def __init__(self, config: SupabaseConfig, session: Optional[requests.Session] = None):
        if not config.url or not config.anon_key:
            raise ValueError("SUPABASE_URL et SUPABASE_ANON_KEY sont obligatoires.")
        self.config = config
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        token = self.config.access_token or self.config.anon_key
        return {
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, params=None, json=None, extra_headers=None) -> Any:
        headers = self._headers()
        if extra_headers:
            headers.update(extra_headers)
        try:
            response = self.session.request(
                method,
                f"{self.config.url}{path}",
                params=params,
                json=json,
                headers=headers,
                timeout=self.config.timeout_sec,
            )
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Supabase injoignable: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"[STORE] {method} {path} -> {response.status_code}: {response.text[:300]}")
            raise StoreError(f"Erreur API {response.status_code}")
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            # requests' JSONDecodeError is a ValueError
            logger.warning(f"[STORE] {method} {path}: réponse non JSON: {response.text[:300]}")
            raise StoreError(f"Réponse illisible: {e}") from e

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        rows = self._request("GET", f"/rest/v1/{table}", params=params)
        return rows or []

    # --- AUTH ---
    def current_user_id(self) -> Optional[str]:
        if not self.config.access_token:
            return None
        try:
            data = self._request("GET", "/auth/v1/user")
        except StoreError as e:
            logger.warning(f"[STORE] Session utilisateur invalide: {e}")
            return None
        return (data or {}).get("id")

    def get_profile_name(self, user_id: str) -> Optional[str]:
        rows = self._select("users_profiles", {"select": "full_name", "id": f"eq.{user_id}"})
        return rows[0].get("full_name") if rows else None

    # --- LESSONS ---
    def get_lesson(self, lesson_id: str) -> Lesson:
        rows = self._select("lessons", {"select": "*", "id": f"eq.{lesson_id}"})
        if not rows:
            raise NotFound(f"Leçon introuvable: {lesson_id}")
        return parse_lesson_row(rows[0])

    def list_subject_lessons(self, subject: str, user_id: Optional[str] = None) -> List[LessonSummary]:
        rows = self._select("lessons", {
            "select": "*",
            "subject": f"eq.{subject}",
            "is_published": "eq.true",
        })
        completed = self._completed_lessons(user_id) if user_id else {}
        return [parse_summary_row(r, completed.get(str(r.get("id")), False)) for r in rows]

    def _completed_lessons(self, user_id: str) -> Dict[str, bool]:
        rows = self._select("lesson_progress", {"select": "lesson_id,completed", "user_id": f"eq.{user_id}"})
        return {str(r["lesson_id"]): bool(r.get("completed")) for r in rows if r.get("lesson_id") is not None}

    def list_tutor_lessons(self, tutor_id: str) -> List[LessonSummary]:
        rows = self._select("lessons", {
            "select": "*",
            "tutor_id": f"eq.{tutor_id}",
            "order": "created_at.desc",
        })
        return [parse_summary_row(r) for r in rows]

    def set_published(self, lesson_id: str, published: bool):
        self._request(
            "PATCH", "/rest/v1/lessons",
            params={"id": f"eq.{lesson_id}"},
            json={"is_published": published},
            extra_headers={"Prefer": "return=minimal"},
        )

    def delete_lesson(self, lesson_id: str):
        self._request("DELETE", "/rest/v1/lessons", params={"id": f"eq.{lesson_id}"})

    # --- ATTEMPTS ---
    def record_attempt(self, record: AttemptRecord):
        self._request(
            "POST", "/rest/v1/quiz_attempts",
            json=record.to_row(),
            extra_headers={"Prefer": "return=minimal"},
        )
        logger.info(f"[STORE] Tentative enregistrée: {record.lesson_id} {record.score}/{record.total_points}")
