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
Client for the generative-AI service.
Google AI Studio (Gemini) is the primary provider; an OpenAI key is honoured
for the two text operations.
"""

import base64
import json
import logging
from typing import Any, Dict, List, Optional

from careercraft.config import Settings, export_ssl_env
from careercraft.errors import AnalysisError, ExtractionError
from careercraft.models import AnalysisResult, ResumeData

# Logger is configured in main.py
logger = logging.getLogger(__name__)

RESUME_INPUT_LIMIT = 8000
RESUME_CONTEXT_LIMIT = 6000
JOB_DESCRIPTION_LIMIT = 4000
SPEECH_INPUT_LIMIT = 1000

SPEECH_SAMPLE_RATE = 24000
SPEECH_VOICE = "Puck"

ANALYSIS_FAILED_MESSAGE = (
    "Analysis failed. This might be due to a network error or an issue with the AI service. "
    "Please try again."
)
MISSING_KEY_MESSAGE = "API Key is missing. Please ensure it is configured in your environment."

FALLBACK_MODELS = ["gemini-2.5-flash", "gemini-2.0-flash"]

_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}
_NUMBER = {"type": "NUMBER"}

RESUME_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": _STRING,
        "email": _STRING,
        "phone": _STRING,
        "summary": _STRING,
        "experience": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "role": _STRING,
                    "company": _STRING,
                    "duration": _STRING,
                    "description": _STRING_LIST,
                },
            },
        },
        "education": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "degree": _STRING,
                    "institution": _STRING,
                    "year": _STRING,
                },
            },
        },
        "skills": _STRING_LIST,
    },
}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "atsScore": _NUMBER,
        "readabilityScore": _NUMBER,
        "keywordMatchScore": _NUMBER,
        "quantifiedImpactScore": _NUMBER,
        "formattingHealthScore": _NUMBER,
        "recruiterSimulationScore": _NUMBER,
        "missingSkills": _STRING_LIST,
        "matchedSkills": _STRING_LIST,
        "tailoredSummary": _STRING,
        "enhancedBullets": _STRING_LIST,
        "voiceBriefingText": _STRING,
        "weeklyRoadmap": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {"week": _STRING, "goal": _STRING, "focus": _STRING},
            },
        },
        "skillRoadmaps": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "skillName": _STRING,
                    "whyItMatters": _STRING,
                    "learningPath": _STRING_LIST,
                    "practiceTask": _STRING,
                    "estimatedTime": _STRING,
                    "resources": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {"title": _STRING, "url": _STRING},
                        },
                    },
                },
            },
        },
    },
}


def extract_json(text: Optional[str]) -> str:
    """
    Returns the outermost ``{...}`` span of an LLM response.
    Models sometimes wrap the object in prose or code fences.
    """
    if not text:
        return "{}"
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text.strip() or "{}"


class AIClient:
    """
    Wraps the generative-AI service with the three operations the app needs:
    résumé extraction, résumé scoring and speech synthesis.
    """
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self.api_key = self.settings.ai_api_key
        self.provider = "openai" if self.api_key.startswith("sk-") else "gemini"
        self._client = None

    def _gemini(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _candidate_models(self) -> List[str]:
        models = [self.settings.model]
        for name in FALLBACK_MODELS:
            if name not in models:
                models.append(name)
        return models

    def _call_llm(self, prompt: str, schema: Dict[str, Any]) -> str:
        """
        Sends one JSON-constrained request and returns the raw response text.
        Raises whatever the provider SDK raises once every model has failed.
        """
        if not self.api_key:
            raise RuntimeError(MISSING_KEY_MESSAGE)

        # Ensure custom CA bundle is visible to httpx-based SDKs
        export_ssl_env()

        if self.provider == "openai":
            import openai
            client = openai.OpenAI(api_key=self.api_key)
            response = client.chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": "Respond with a single JSON object only."},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
            )
            return response.choices[0].message.content or ""

        from google.genai import types

        client = self._gemini()
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )

        last_exception = None
        for model_name in self._candidate_models():
            try:
                logger.debug(f"Attempting model: {model_name}")
                response = client.models.generate_content(
                    model=model_name,
                    contents=prompt,
                    config=config,
                )
                return response.text
            except Exception as e:
                logger.warning(f"Model {model_name} failed: {e}")
                last_exception = e

        raise last_exception

    def parse_resume(self, raw_text: str) -> ResumeData:
        """
        Parses raw résumé text into ResumeData.

        Raises:
            ExtractionError: when the service is unavailable or the reply is not JSON.
        """
        if not self.api_key:
            raise ExtractionError(MISSING_KEY_MESSAGE)

        prompt = f"""
        Extract the following resume details into a structured JSON format.
        If a field is missing, return an empty string or empty array.

        Input text: {raw_text[:RESUME_INPUT_LIMIT]}
        """
        try:
            data = json.loads(extract_json(self._call_llm(prompt, RESUME_SCHEMA)))
        except Exception as e:
            raise ExtractionError("Could not extract résumé fields.", original_error=e) from e

        resume = ResumeData.from_dict(data)
        if not resume.name:
            resume.name = ResumeData.placeholder().name
        return resume

    def extract_resume(self, raw_text: str) -> ResumeData:
        """Best-effort parse: any failure yields the placeholder parse."""
        try:
            return self.parse_resume(raw_text)
        except ExtractionError as e:
            logger.error(f"Resume parsing error: {e.original_error or e}")
            return ResumeData.placeholder()

    def score_resume(self, resume: ResumeData, job_title: str, job_description: str) -> AnalysisResult:
        """
        Scores a parsed résumé against a job and builds the learning roadmap.

        Raises:
            AnalysisError: on a missing key, a provider failure or an unparseable response.
        """
        if not self.api_key:
            raise AnalysisError(MISSING_KEY_MESSAGE)

        resume_context = json.dumps({
            "summary": resume.summary,
            "skills": resume.skills,
            "experience": [{"role": e.role, "desc": e.description} for e in resume.experience],
        })[:RESUME_CONTEXT_LIMIT]

        prompt = f"""
        Act as an expert Recruiter and ATS Analyst. Analyze this resume for the role of "{job_title}".

        Target Job Description: {job_description[:JOB_DESCRIPTION_LIMIT]}

        Resume Context: {resume_context}

        Return a comprehensive evaluation in JSON. Ensure all numerical scores are between 0 and 100.
        Rewrite the strongest experience bullets using the STAR method with quantified outcomes.
        Include a multi-week roadmap, a learning plan for each missing skill, and a short
        spoken briefing (voiceBriefingText) summarising the verdict.
        """
        try:
            data = json.loads(extract_json(self._call_llm(prompt, ANALYSIS_SCHEMA)))
        except Exception as e:
            logger.error(f"Analysis failure: {e}")
            raise AnalysisError(ANALYSIS_FAILED_MESSAGE, original_error=e) from e

        if not isinstance(data, dict):
            logger.error(f"Analysis response was not an object: {type(data).__name__}")
            raise AnalysisError(ANALYSIS_FAILED_MESSAGE)

        try:
            return AnalysisResult.from_dict(data)
        except Exception as e:
            logger.error(f"Analysis response could not be read: {e}")
            raise AnalysisError(ANALYSIS_FAILED_MESSAGE, original_error=e) from e

    def synthesize_speech(self, text: str) -> bytes:
        """
        Returns 16-bit mono PCM at 24 kHz for ``text``, or ``b""`` on any failure.
        """
        if not text or not self.api_key or self.provider != "gemini":
            return b""

        export_ssl_env()
        try:
            from google.genai import types

            config = types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=SPEECH_VOICE)
                    )
                ),
            )
            response = self._gemini().models.generate_content(
                model=self.settings.tts_model,
                contents=text[:SPEECH_INPUT_LIMIT],
                config=config,
            )
            data = response.candidates[0].content.parts[0].inline_data.data
        except Exception as e:
            logger.warning(f"Speech synthesis failed: {e}")
            return b""

        if isinstance(data, str):
            return base64.b64decode(data)
        return data or b""
