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
Exception hierarchy for CareerCraft.

Each error carries a ``message`` meant to be shown to the user as-is.
"""

from typing import Optional


class CareerCraftError(Exception):
    """Base class for all user-facing errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class ValidationError(CareerCraftError, ValueError):
    """Required input is missing or malformed. Shown inline, no transition."""


class ExtractionError(CareerCraftError):
    """Résumé extraction failed. Never fatal; callers fall back to defaults."""


class AnalysisError(CareerCraftError):
    """The scoring call failed. Aborts the current attempt."""


class AnalysisTimeoutError(AnalysisError):
    """The analysis watchdog expired before the scoring call settled."""


class PersistenceError(CareerCraftError):
    """Reading or writing the hosted database failed."""


class AccessError(PersistenceError):
    """A persistence call needs a signed-in session and none is active."""


class AuthError(CareerCraftError):
    """
    Authentication failure reported by the auth service.

    Attributes:
        message: Text shown inline in the auth form
        code: The service's ``error_code``, when it sent one
    """

    def __init__(self, message: str, code: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(message, original_error=original_error)
        self.code = code


class InvalidCredentialsError(AuthError):
    pass


class DuplicateAccountError(AuthError):
    pass


class WeakPasswordError(AuthError):
    pass


class ExpiredResetLinkError(AuthError):
    pass
