# Copyright 2026 Justin Cook
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Row storage in the hosted database (Supabase PostgREST API).

Tables:
    analyses(user_id, job_title, job_description, resume_data, analysis_result, created_at)
    contact_messages(name, email, message)
"""

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from careercraft.config import Settings, get_ca_bundle
from careercraft.errors import AccessError, PersistenceError, ValidationError
from careercraft.models import AnalysisResult, HistoryRecord, ResumeData
from careercraft.session import SessionStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PersistenceClient:
    def __init__(self, settings: Settings, sessions: SessionStore, http: Optional[requests.Session] = None):
        self.settings = settings
        self.sessions = sessions
        self.base_url = f"{settings.supabase_url}/rest/v1"
        self.http = http or requests.Session()

    def _request(self, method: str, table: str, access_token: Optional[str] = None,
                 payload: Any = None, params: Optional[Dict[str, str]] = None) -> Any:
        if not self.settings.backend_configured:
            raise PersistenceError("History is unavailable: the backend is not configured.")

        headers = {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {access_token or self.settings.supabase_anon_key}",
            "Content-Type": "application/json",
        }
        if method == "POST":
            headers["Prefer"] = "return=minimal"

        try:
            response = self.http.request(
                method,
                f"{self.base_url}/{table}",
                json=payload,
                params=params,
                headers=headers,
                timeout=15,
                verify=get_ca_bundle(),
            )
        except requests.exceptions.RequestException as e:
            raise PersistenceError("Could not reach the database. Please try again.", original_error=e) from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            raise PersistenceError(detail or f"Database request failed ({response.status_code}).")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Non-JSON response from {table}: {response.text[:200]!r}")
            raise PersistenceError("Unexpected response from the database.", original_error=e) from e

    def save_analysis(self, job_title: str, job_description: str,
                      resume: ResumeData, result: AnalysisResult) -> None:
        """
        Inserts one row into ``analyses`` for the signed-in user.

        Raises:
            AccessError: no active session.
            PersistenceError: the insert failed.
        """
        session = self.sessions.current_session()
        if session is None:
            raise AccessError("Please sign in to save your analysis.")

        self._request("POST", "analyses", access_token=session.access_token, payload=[{
            "user_id": session.user_id,
            "job_title": job_title,
            "job_description": job_description,
            "resume_data": resume.to_dict(),
            "analysis_result": result.to_dict(),
        }])
        logger.info(f"Saved analysis for '{job_title}'")

    def list_analyses(self) -> List[HistoryRecord]:
        """Returns the signed-in user's analyses, newest first."""
        session = self.sessions.current_session()
        if session is None:
            raise AccessError("Please sign in to view your history.")

        rows = self._request(
            "GET", "analyses",
            access_token=session.access_token,
            params={"select": "*", "order": "created_at.desc"},
        ) or []
        records = [HistoryRecord.from_row(row) for row in rows if isinstance(row, dict)]
        # Row-level security scopes rows to the user; order is enforced here too
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def save_contact_message(self, name: str, email: str, message: str) -> None:
        """
        Stores a message from the contact form.

        Raises:
            ValidationError: a field is blank or the email is malformed.
            PersistenceError: the insert failed.
        """
        if not name.strip() or not email.strip() or not message.strip():
            raise ValidationError("Please fill in your name, email and message.")
        if not EMAIL_PATTERN.match(email.strip()):
            raise ValidationError("Please enter a valid email address.")

        session = self.sessions.current_session()
        self._request(
            "POST", "contact_messages",
            access_token=session.access_token if session else None,
            payload=[{"name": name.strip(), "email": email.strip(), "message": message.strip()}],
        )
        logger.info("Contact message submitted")
