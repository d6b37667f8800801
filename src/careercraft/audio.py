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
Voice briefing playback.

The speech endpoint returns bare PCM samples; they are wrapped in a WAV
container so any system player can handle them.
"""

import asyncio
import io
import logging
import shutil
import subprocess
import time
import wave
from pathlib import Path
from typing import Callable, Optional

from careercraft.llm_client import SPEECH_SAMPLE_RATE

logger = logging.getLogger(__name__)

SYSTEM_PLAYERS = ("afplay", "aplay", "paplay")


def pcm_to_wav(pcm: bytes, sample_rate: int = SPEECH_SAMPLE_RATE, channels: int = 1, sample_width: int = 2) -> bytes:
    """Wraps 16-bit little-endian PCM in a WAV header."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def system_player(path: Path) -> None:
    """Plays a WAV file with the first available command-line player."""
    for command in SYSTEM_PLAYERS:
        executable = shutil.which(command)
        if executable:
            subprocess.run([executable, str(path)], check=False, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            return
    logger.info(f"No audio player found. Briefing saved to {path}")


class VoiceBriefing:
    """
    Speaks an analysis summary. Requests made while a briefing is already
    playing are dropped.
    """
    def __init__(self, ai, output_dir: Path, player: Optional[Callable[[Path], None]] = None):
        self.ai = ai
        self.output_dir = Path(output_dir)
        self.player = player or system_player
        self.busy = False

    async def play(self, text: str) -> Optional[Path]:
        """Returns the WAV path that was played, or None when nothing was."""
        if self.busy or not text.strip():
            return None
        self.busy = True
        try:
            pcm = await asyncio.to_thread(self.ai.synthesize_speech, text)
            if not pcm:
                return None
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"briefing_{int(time.time())}.wav"
            path.write_bytes(pcm_to_wav(pcm))
            await asyncio.to_thread(self.player, path)
            return path
        except Exception as e:
            logger.warning(f"Voice briefing failed: {e}")
            return None
        finally:
            self.busy = False
