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

import asyncio
import io
import shutil
import tempfile
import threading
import unittest
import wave
from pathlib import Path
from unittest.mock import MagicMock, patch

from careercraft import audio


class TestPcmToWav(unittest.TestCase):
    def test_header(self):
        pcm = b"\x00\x00\x10\x00" * 240
        data = audio.pcm_to_wav(pcm)
        with wave.open(io.BytesIO(data), "rb") as wav:
            self.assertEqual(wav.getframerate(), 24000)
            self.assertEqual(wav.getnchannels(), 1)
            self.assertEqual(wav.getsampwidth(), 2)
            self.assertEqual(wav.getnframes(), 480)


class TestSystemPlayer(unittest.TestCase):
    @patch('careercraft.audio.subprocess.run')
    @patch('careercraft.audio.shutil.which', side_effect=lambda c: "/usr/bin/aplay" if c == "aplay" else None)
    def test_uses_first_available(self, mock_which, mock_run):
        audio.system_player(Path("brief.wav"))
        self.assertEqual(mock_run.call_args[0][0], ["/usr/bin/aplay", "brief.wav"])

    @patch('careercraft.audio.subprocess.run')
    @patch('careercraft.audio.shutil.which', return_value=None)
    def test_no_player(self, mock_which, mock_run):
        audio.system_player(Path("brief.wav"))
        mock_run.assert_not_called()


class TestVoiceBriefing(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.ai = MagicMock()
        self.ai.synthesize_speech.return_value = b"\x00\x00" * 100
        self.played = []
        self.briefing = audio.VoiceBriefing(self.ai, Path(self.test_dir), player=self.played.append)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    async def test_play_writes_wav(self):
        path = await self.briefing.play("You scored 82.")
        self.assertTrue(path.exists())
        self.assertEqual(self.played, [path])
        self.assertFalse(self.briefing.busy)

    async def test_empty_audio_is_skipped(self):
        self.ai.synthesize_speech.return_value = b""
        self.assertIsNone(await self.briefing.play("hello"))
        self.assertEqual(self.played, [])

    async def test_blank_text(self):
        self.assertIsNone(await self.briefing.play("   "))
        self.ai.synthesize_speech.assert_not_called()

    async def test_overlapping_requests_are_dropped(self):
        release = threading.Event()

        def slow_speech(text):
            release.wait(5)
            return b"\x00\x00" * 10

        self.ai.synthesize_speech.side_effect = slow_speech
        first = asyncio.create_task(self.briefing.play("first"))
        await asyncio.sleep(0)
        self.assertTrue(self.briefing.busy)

        self.assertIsNone(await self.briefing.play("second"))

        release.set()
        self.assertIsNotNone(await first)
        self.assertEqual(self.ai.synthesize_speech.call_count, 1)

    async def test_player_failure_releases_busy_flag(self):
        def broken_player(path):
            raise OSError("device busy")

        briefing = audio.VoiceBriefing(self.ai, Path(self.test_dir), player=broken_player)
        self.assertIsNone(await briefing.play("hello"))
        self.assertFalse(briefing.busy)


if __name__ == '__main__':
    unittest.main()
