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
Session store backed by the hosted auth service (Supabase GoTrue REST API).
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests

from careercraft.config import Settings, get_ca_bundle
from careercraft.errors import (
    AuthError,
    DuplicateAccountError,
    ExpiredResetLinkError,
    InvalidCredentialsError,
    WeakPasswordError,
)
from careercraft.models import Session

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
USER_UPDATED = "USER_UPDATED"

AuthListener = Callable[[str, Optional[Session]], None]

_ERROR_TYPES = {
    "invalid_credentials": InvalidCredentialsError,
    "invalid_grant": InvalidCredentialsError,
    "user_already_exists": DuplicateAccountError,
    "email_exists": DuplicateAccountError,
    "weak_password": WeakPasswordError,
    "otp_expired": ExpiredResetLinkError,
    "flow_state_expired": ExpiredResetLinkError,
    "session_not_found": ExpiredResetLinkError,
}


def _auth_error(response: requests.Response) -> AuthError:
    """Maps a GoTrue error body onto the AuthError hierarchy."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    code = body.get("error_code") or body.get("error") or ""
    message = (
        body.get("msg")
        or body.get("error_description")
        or body.get("message")
        or "An authentication error occurred."
    )

    error_type = _ERROR_TYPES.get(code)
    if error_type is None and "already registered" in message.lower():
        error_type = DuplicateAccountError
    return (error_type or AuthError)(message, code=code or None)


class SessionStore:
    """
    Holds the current session and notifies subscribers of auth events.

    The session is cached on disk so a restarted shell stays signed in;
    ``restore()`` exchanges the cached refresh token for a fresh session.
    """
    def __init__(self, settings: Settings, cache_file: Optional[Path] = None, http: Optional[requests.Session] = None):
        self.settings = settings
        self.base_url = f"{settings.supabase_url}/auth/v1"
        self.http = http or requests.Session()
        self.cache_file = cache_file if cache_file is not None else settings.home / ".session.json"
        self._session: Optional[Session] = None
        self._listeners: List[AuthListener] = []

    # --- observers ---

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Registers ``listener(event, session)``; returns the matching unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str) -> None:
        logger.debug(f"Auth event: {event}")
        for listener in list(self._listeners):
            try:
                listener(event, self._session)
            except Exception as e:
                logger.error(f"Auth listener failed on {event}: {e}")

    # --- transport ---

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {access_token or self.settings.supabase_anon_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, str]] = None, access_token: Optional[str] = None) -> Dict[str, Any]:
        if not self.settings.backend_configured:
            raise AuthError("Accounts are unavailable: the backend is not configured.")
        try:
            response = self.http.request(
                method,
                f"{self.base_url}/{path}",
                json=payload,
                params=params,
                headers=self._headers(access_token),
                timeout=15,
                verify=get_ca_bundle(),
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Auth request {method} {path} failed: {e}")
            raise AuthError("Could not reach the authentication service. Please try again.", original_error=e) from e

        if response.status_code >= 400:
            raise _auth_error(response)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    # --- cache ---

    def _load_cache(self) -> Optional[Dict[str, str]]:
        try:
            if not self.cache_file.exists():
                return None
            with open(self.cache_file, 'r') as f:
                return json.load(f)
        except Exception as e:
            logger.warning(f"Failed to load session cache: {e}")
            return None

    def _save_cache(self) -> None:
        if self._session is None:
            return
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, 'w') as f:
                json.dump({"refresh_token": self._session.refresh_token}, f)
        except Exception as e:
            logger.warning(f"Failed to save session cache: {e}")

    def _clear_cache(self) -> None:
        try:
            self.cache_file.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clear session cache: {e}")

    def _set_session(self, payload: Dict[str, Any], event: str) -> Session:
        self._session = Session.from_auth_response(payload)
        self._save_cache()
        self._emit(event)
        return self._session

    # --- public contract ---

    def current_session(self) -> Optional[Session]:
        return self._session

    def restore(self) -> Optional[Session]:
        """Re-establishes the cached session, if any. Failures just leave the user signed out."""
        cached = self._load_cache()
        if not cached or not cached.get("refresh_token") or not self.settings.backend_configured:
            return None
        try:
            payload = self._request(
                "POST", "token",
                payload={"refresh_token": cached["refresh_token"]},
                params={"grant_type": "refresh_token"},
            )
        except AuthError as e:
            logger.info(f"Cached session could not be restored: {e}")
            self._clear_cache()
            return None
        return self._set_session(payload, SIGNED_IN)

    def sign_up(self, email: str, password: str, full_name: str = "") -> Optional[Session]:
        """
        Registers a new account. Returns a session when the project auto-confirms
        sign-ups, otherwise None (a confirmation email has been sent).
        """
        payload = self._request("POST", "signup", payload={
            "email": email,
            "password": password,
            "data": {"full_name": full_name},
        })
        if payload.get("access_token"):
            return self._set_session(payload, SIGNED_IN)
        logger.info(f"Sign-up pending email confirmation for {email}")
        return None

    def sign_in(self, email: str, password: str) -> Session:
        payload = self._request(
            "POST", "token",
            payload={"email": email, "password": password},
            params={"grant_type": "password"},
        )
        return self._set_session(payload, SIGNED_IN)

    def sign_out(self) -> None:
        """Ends the session locally even when the server call fails."""
        session = self._session
        if session is not None:
            try:
                self._request("POST", "logout", access_token=session.access_token)
            except AuthError as e:
                logger.warning(f"Server-side sign-out failed: {e}")
        self._session = None
        self._clear_cache()
        self._emit(SIGNED_OUT)

    def request_password_reset(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._request("POST", "recover", payload={"email": email}, params=params)
        logger.info(f"Password recovery email requested for {email}")

    def verify_recovery(self, email: str, token: str) -> Session:
        """Exchanges the one-time code from the recovery email for a session."""
        payload = self._request("POST", "verify", payload={
            "type": "recovery",
            "email": email,
            "token": token,
        })
        return self._set_session(payload, PASSWORD_RECOVERY)

    def confirm_password_reset(self, new_password: str) -> None:
        if self._session is None:
            raise ExpiredResetLinkError("Your recovery link has expired. Please request a new one.")
        self._request("PUT", "user", payload={"password": new_password},
                      access_token=self._session.access_token)
        self._emit(USER_UPDATED)
