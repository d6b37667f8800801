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
Runtime configuration for the two external services.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory. The CA bundle used for outbound HTTPS is
resolved in this order:
  1. Explicit override via --ca-bundle
  2. REQUESTS_CA_BUNDLE
  3. CURL_CA_BUNDLE
  4. SSL_CERT_FILE
  5. System defaults (True)
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_TIMEOUT = 60.0

_ca_bundle_override: Optional[str] = None


def set_ca_bundle_override(path: str) -> None:
    """Set an explicit CA bundle path from a CLI argument."""
    global _ca_bundle_override
    _ca_bundle_override = path
    logger.info(f"CA bundle override set to: {path}")


def get_ca_bundle() -> str | bool:
    """
    Resolve the ``verify`` argument for requests.

    Returns:
        str: Path to a CA bundle file, or
        bool: True to use the default trust store.
    """
    if _ca_bundle_override:
        return _ca_bundle_override

    for var in ("REQUESTS_CA_BUNDLE", "CURL_CA_BUNDLE", "SSL_CERT_FILE"):
        value = os.environ.get(var)
        if value:
            logger.debug(f"Using CA bundle from {var}: {value}")
            return value

    return True


def export_ssl_env() -> None:
    """
    Mirror a custom CA bundle into SSL_CERT_FILE, which the httpx-based
    google-genai and openai SDKs read directly.
    """
    bundle = get_ca_bundle()
    if isinstance(bundle, str) and os.environ.get("SSL_CERT_FILE") != bundle:
        os.environ["SSL_CERT_FILE"] = bundle
        logger.debug(f"Set SSL_CERT_FILE={bundle} for SDK clients")


def load_env(env_file: Optional[str] = None) -> None:
    """Seeds the environment from ``.env``. Variables already set win."""
    load_dotenv(env_file, override=False)


def home_dir() -> Path:
    """Where logs, briefings and the session cache live."""
    return Path(os.environ.get("CAREERCRAFT_HOME", "user_content"))


@dataclass
class Settings:
    """Endpoint/key pairs for the AI and backend services plus client tunables."""
    ai_api_key: str = ""
    model: str = DEFAULT_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    openai_model: str = DEFAULT_OPENAI_MODEL
    supabase_url: str = ""
    supabase_anon_key: str = ""
    analysis_timeout: float = DEFAULT_TIMEOUT
    home: Path = Path("user_content")

    @property
    def backend_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Builds settings from the environment after loading ``.env`` (never overriding)."""
        load_env(env_file)

        timeout_raw = os.environ.get("CAREERCRAFT_TIMEOUT", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            logger.warning(f"Ignoring invalid CAREERCRAFT_TIMEOUT={timeout_raw!r}")
            timeout = DEFAULT_TIMEOUT

        settings = cls(
            ai_api_key=(
                os.environ.get("GEMINI_API_KEY")
                or os.environ.get("API_KEY")
                or os.environ.get("OPENAI_API_KEY")
                or ""
            ),
            model=os.environ.get("CAREERCRAFT_MODEL", DEFAULT_MODEL),
            tts_model=os.environ.get("CAREERCRAFT_TTS_MODEL", DEFAULT_TTS_MODEL),
            openai_model=os.environ.get("CAREERCRAFT_OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            supabase_url=os.environ.get("SUPABASE_URL", "").rstrip("/"),
            supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            analysis_timeout=timeout,
            home=home_dir(),
        )
        if not settings.ai_api_key:
            logger.warning("No AI API key found. Analysis will fail until GEMINI_API_KEY is set.")
        if not settings.backend_configured:
            logger.info("SUPABASE_URL/SUPABASE_ANON_KEY not set. Accounts and history are disabled.")
        return settings
