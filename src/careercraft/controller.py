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
View-state controller.

Owns the single AppState plus the in-memory draft (résumé text, job title,
job description, parsed résumé, analysis result, transient messages) and is
the only place that changes them. Views read the attributes and call the
intent methods; they are told to re-render through ``add_listener``.

All mutation happens on the asyncio event loop. Blocking SDK and HTTP calls
are pushed to a worker thread with ``asyncio.to_thread`` and their results
are applied back on the loop.
"""

import asyncio
import logging
import threading
import time
from typing import Callable, List, Optional, Set, Tuple

from careercraft.errors import AnalysisError, AnalysisTimeoutError, AuthError, CareerCraftError, ValidationError
from careercraft.models import RESULT_STATES, AnalysisResult, AppState, HistoryRecord, ResumeData, Session
from careercraft.session import PASSWORD_RECOVERY, SIGNED_IN, SIGNED_OUT, SessionStore

logger = logging.getLogger(__name__)

VALIDATION_MESSAGE = "Please provide your resume, the job title, and the job description."
TIMEOUT_MESSAGE = (
    "Request timed out. This can happen with very large job descriptions. "
    "Please try a more concise version."
)
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again."

DEFAULT_PROGRESS_HINTS: Tuple[Tuple[float, str], ...] = (
    (15.0, "The AI engine is deep-parsing your experience..."),
    (35.0, "Synthesizing your career roadmap. Almost done..."),
)

Listener = Callable[["AppController"], None]


class AppController:
    """
    Finite state machine behind every screen.

    Args:
        ai: object exposing ``extract_resume`` and ``score_resume``
        sessions: the SessionStore whose events the controller follows
        persistence: optional PersistenceClient; analyses are saved only with a session
        timeout: seconds an analysis may stay in ANALYZING before it is abandoned
        tick: watchdog period in seconds
    """
    def __init__(self, ai, sessions: SessionStore, persistence=None, timeout: float = 60.0,
                 tick: float = 1.0, progress_hints: Tuple[Tuple[float, str], ...] = DEFAULT_PROGRESS_HINTS):
        self.ai = ai
        self.sessions = sessions
        self.persistence = persistence
        self.timeout = timeout
        self.tick = tick
        self.progress_hints = progress_hints

        self.state = AppState.IDLE
        self.resume_text = ""
        self.job_title = ""
        self.job_description = ""
        self.parsed_resume: Optional[ResumeData] = None
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[str] = None
        self.status: Optional[str] = None
        self.analysis_started_at: Optional[float] = None

        # Auth modal: None (closed), "auth" or "recovery"
        self.auth_prompt: Optional[str] = None
        self.auth_error: Optional[str] = None
        self.auth_notice: Optional[str] = None

        self._attempt = 0
        self._watchdog: Optional[asyncio.Task] = None
        self._pending_saves: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[int] = None

    # --- lifecycle ---

    def start(self) -> None:
        """Subscribes to auth events. Call once, from the event loop if there is one."""
        if self._unsubscribe is not None:
            return
        try:
            self._loop = asyncio.get_running_loop()
            self._loop_thread = threading.get_ident()
        except RuntimeError:
            self._loop = None
        self._unsubscribe = self.sessions.subscribe(self._on_auth_event)

    def close(self) -> None:
        """Unsubscribes and stops the watchdog. Pending saves are left to finish."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._stop_watchdog()

    def __enter__(self) -> "AppController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def drain(self) -> None:
        """Waits for fire-and-forget saves to settle."""
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

    # --- observers ---

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"View listener failed: {e}")

    def _transition(self, target: AppState) -> None:
        if target is not self.state:
            logger.debug(f"State {self.state.value} -> {target.value}")
        self.state = target
        self._notify()

    # --- queries ---

    @property
    def session(self) -> Optional[Session]:
        return self.sessions.current_session()

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def has_result(self) -> bool:
        return self.result is not None

    # --- draft setters ---

    def submit_resume(self, text: str) -> None:
        if text != self.resume_text:
            self.parsed_resume = None
        self.resume_text = text
        self._notify()

    def set_job_title(self, title: str) -> None:
        self.job_title = title
        self._notify()

    def set_job_description(self, description: str) -> None:
        self.job_description = description
        self._notify()

    def dismiss_error(self) -> None:
        self.error = None
        self._notify()

    async def prefetch_resume(self) -> None:
        """Parses the current résumé text ahead of analysis. Never raises."""
        text = self.resume_text
        if not text.strip():
            return
        try:
            parsed = await asyncio.to_thread(self.ai.extract_resume, text)
        except Exception as e:
            logger.warning(f"Background parse failed: {e}")
            return
        # Drop the parse if the draft moved on while we waited
        if text == self.resume_text:
            self.parsed_resume = parsed
            self._notify()

    # --- navigation ---

    def navigate(self, target: AppState) -> bool:
        """
        Moves to ``target`` unless a guard forbids it. Returns whether it moved.
        Leaving ANALYZING this way abandons the attempt in flight.
        """
        if target is AppState.ANALYZING:
            # Only analyze() may enter this state
            return False
        if target in RESULT_STATES and self.result is None:
            logger.debug(f"Ignoring navigation to {target.value}: no analysis result")
            return False
        if target is AppState.HISTORY and not self.is_authenticated:
            logger.debug("Ignoring navigation to history: not signed in")
            return False
        if self.state is AppState.ANALYZING:
            self._attempt += 1
            self._stop_watchdog()
            self.status = None
            self.analysis_started_at = None
        self._transition(target)
        return True

    def reset(self) -> None:
        """Clears the draft and result and returns to IDLE."""
        self._attempt += 1
        self._stop_watchdog()
        self.resume_text = ""
        self.job_title = ""
        self.job_description = ""
        self.parsed_resume = None
        self.result = None
        self.error = None
        self.status = None
        self.analysis_started_at = None
        self._transition(AppState.IDLE)

    def select_history_entry(self, record: HistoryRecord) -> None:
        self._attempt += 1
        self._stop_watchdog()
        self.job_title = record.job_title
        self.job_description = record.job_description
        self.parsed_resume = record.resume_data
        self.result = record.analysis_result
        self.error = None
        self.status = None
        self._transition(AppState.RESULT)

    async def load_history(self) -> List[HistoryRecord]:
        """Fetches the user's saved analyses; errors land in the banner."""
        if self.persistence is None:
            self.error = "History is unavailable: the backend is not configured."
            self._notify()
            return []
        try:
            return await asyncio.to_thread(self.persistence.list_analyses)
        except CareerCraftError as e:
            logger.error(f"Fetch history error: {e}")
            self.error = e.message
            self._notify()
            return []

    # --- analysis ---

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._attempt and self.state is AppState.ANALYZING

    def _abort(self, message: str) -> None:
        self.error = message
        self.status = None
        self.analysis_started_at = None
        self._transition(AppState.UPLOADING)

    async def analyze(self) -> bool:
        """
        Runs extraction (when needed) and scoring for the current draft.
        Returns True when the attempt ended in RESULT.
        """
        if self.state is AppState.ANALYZING:
            logger.warning("Analysis already in progress. Ignoring duplicate submission.")
            return False

        if not self.resume_text.strip() or not self.job_title.strip() or not self.job_description.strip():
            self.error = ValidationError(VALIDATION_MESSAGE).message
            self._notify()
            return False

        if self.state is not AppState.UPLOADING:
            logger.warning(f"Cannot analyze from {self.state.value}")
            return False

        self._attempt += 1
        attempt = self._attempt
        self.error = None
        self.status = None
        self.analysis_started_at = time.monotonic()
        self._transition(AppState.ANALYZING)
        self._start_watchdog(attempt)

        try:
            resume = self.parsed_resume
            if resume is None or resume.is_placeholder:
                try:
                    resume = await asyncio.to_thread(self.ai.extract_resume, self.resume_text)
                except Exception as e:
                    # Extraction never aborts an analysis
                    logger.warning(f"Resume parsing failed, scoring with defaults: {e}")
                    resume = ResumeData.placeholder()
                if not self._is_current(attempt):
                    logger.info("Discarding résumé parse from a superseded analysis")
                    return False
                self.parsed_resume = resume

            result = await asyncio.to_thread(
                self.ai.score_resume, resume, self.job_title, self.job_description
            )
        except AnalysisError as e:
            if self._is_current(attempt):
                logger.error(f"Analysis Error: {e}")
                self._abort(e.message)
            return False
        except Exception as e:
            if self._is_current(attempt):
                logger.exception("Analysis Error")
                self._abort(str(e) or UNEXPECTED_MESSAGE)
            return False
        finally:
            if attempt == self._attempt:
                self._stop_watchdog()

        if not self._is_current(attempt):
            logger.info("Discarding analysis response from a superseded attempt")
            return False

        self.result = result
        self.status = None
        self.analysis_started_at = None
        self._transition(AppState.RESULT)

        session = self.session
        if session is not None and self.persistence is not None:
            self._schedule_save(self.job_title, self.job_description, resume, result)
        return True

    def cancel_analysis(self) -> None:
        if self.state is not AppState.ANALYZING:
            return
        logger.info("Analysis cancelled by user")
        self._attempt += 1
        self._stop_watchdog()
        self.status = None
        self.analysis_started_at = None
        self._transition(AppState.UPLOADING)

    def _schedule_save(self, job_title: str, job_description: str,
                       resume: ResumeData, result: AnalysisResult) -> None:
        task = asyncio.create_task(self._save_analysis(job_title, job_description, resume, result))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save_analysis(self, job_title: str, job_description: str,
                             resume: ResumeData, result: AnalysisResult) -> None:
        try:
            await asyncio.to_thread(self.persistence.save_analysis, job_title, job_description, resume, result)
        except Exception as e:
            logger.error(f"Database persistence error: {e}")

    # --- watchdog ---

    def _start_watchdog(self, attempt: int) -> None:
        self._stop_watchdog()
        self._watchdog = asyncio.create_task(self._watch(attempt))

    def _stop_watchdog(self) -> None:
        task = self._watchdog
        self._watchdog = None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()

    async def _watch(self, attempt: int) -> None:
        started = time.monotonic()
        shown = set()
        while True:
            await asyncio.sleep(self.tick)
            if not self._is_current(attempt):
                return
            elapsed = time.monotonic() - started
            if elapsed > self.timeout:
                logger.warning(f"Analysis timed out after {elapsed:.0f}s")
                # Supersede the attempt so a late response is discarded
                self._attempt += 1
                self._watchdog = None
                self._abort(AnalysisTimeoutError(TIMEOUT_MESSAGE).message)
                return
            for threshold, hint in self.progress_hints:
                if elapsed >= threshold and threshold not in shown:
                    shown.add(threshold)
                    self.status = hint
                    self._notify()

    # --- auth ---

    def _on_auth_event(self, event: str, session: Optional[Session]) -> None:
        loop = self._loop
        if loop is not None and threading.get_ident() != self._loop_thread and not loop.is_closed():
            loop.call_soon_threadsafe(self._handle_auth_event, event, session)
        else:
            self._handle_auth_event(event, session)

    def _handle_auth_event(self, event: str, session: Optional[Session]) -> None:
        if event == SIGNED_OUT:
            self.auth_prompt = None
            self.reset()
        elif event == PASSWORD_RECOVERY:
            self.auth_prompt = "recovery"
            self.auth_error = None
            self._notify()
        elif event == SIGNED_IN and session is not None:
            if self.auth_prompt == "auth":
                self.auth_prompt = None
            self._notify()
        else:
            self._notify()

    def open_auth_prompt(self) -> None:
        self.auth_prompt = "auth"
        self.auth_error = None
        self.auth_notice = None
        self._notify()

    def close_auth_prompt(self) -> None:
        self.auth_prompt = None
        self.auth_error = None
        self.auth_notice = None
        self._notify()

    async def _auth_call(self, func, *args, notice: Optional[str] = None) -> bool:
        self.auth_error = None
        self.auth_notice = None
        try:
            await asyncio.to_thread(func, *args)
        except AuthError as e:
            logger.info(f"Auth error ({e.code or type(e).__name__}): {e}")
            self.auth_error = e.message
            self._notify()
            return False
        self.auth_notice = notice
        self._notify()
        return True

    async def sign_in(self, email: str, password: str) -> bool:
        return await self._auth_call(self.sessions.sign_in, email, password)

    async def sign_up(self, email: str, password: str, full_name: str = "") -> bool:
        return await self._auth_call(
            self.sessions.sign_up, email, password, full_name,
            notice="Registration successful! Check your email for the confirmation link.",
        )

    async def request_password_reset(self, email: str) -> bool:
        return await self._auth_call(
            self.sessions.request_password_reset, email,
            notice="A secure recovery link has been sent to your email. Please check your inbox.",
        )

    async def verify_recovery(self, email: str, token: str) -> bool:
        return await self._auth_call(self.sessions.verify_recovery, email, token)

    async def confirm_password_reset(self, new_password: str) -> bool:
        ok = await self._auth_call(
            self.sessions.confirm_password_reset, new_password,
            notice="Success! Your password has been updated. You are now logged in.",
        )
        if ok:
            self.auth_prompt = None
            self._notify()
        return ok

    async def sign_out(self) -> None:
        await asyncio.to_thread(self.sessions.sign_out)
        self.reset()

    async def submit_contact_message(self, name: str, email: str, message: str) -> Optional[str]:
        """Returns None on success, otherwise the inline error for the contact form."""
        if self.persistence is None:
            return "Messaging is unavailable: the backend is not configured."
        try:
            await asyncio.to_thread(self.persistence.save_contact_message, name, email, message)
        except CareerCraftError as e:
            logger.error(f"Submission error: {e}")
            return e.message
        return None
