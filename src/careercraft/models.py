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
Data models for the CareerCraft application.

The wire form (LLM responses and rows in the hosted database) is camelCase
JSON; the dataclasses below are the snake_case view used by the rest of the
code. Every ``from_dict`` tolerates missing or null fields and fills in
empty strings/lists so the views never branch on absent data.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

PLACEHOLDER_NAME = "Candidate Elite"
DEFAULT_TAILORED_SUMMARY = "Expert professional with alignment to target core competencies."

# Fallbacks used when the model omits a score
SCORE_DEFAULTS = {
    "ats_score": 70,
    "readability_score": 75,
    "keyword_match_score": 65,
    "quantified_impact_score": 70,
    "formatting_health_score": 75,
    "recruiter_simulation_score": 80,
}


class AppState(Enum):
    IDLE = "IDLE"
    UPLOADING = "UPLOADING"
    ANALYZING = "ANALYZING"
    RESULT = "RESULT"
    VIEWING_RESUME = "VIEWING_RESUME"
    ROADMAP = "ROADMAP"
    HISTORY = "HISTORY"


# States that only make sense with an AnalysisResult in hand
RESULT_STATES = frozenset({AppState.RESULT, AppState.VIEWING_RESUME, AppState.ROADMAP})


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def clamp_score(value: Any, default: int) -> int:
    """Coerces a model-supplied score into an int in [0, 100]."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
        if not math.isfinite(number):
            return default
        score = int(round(number))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(0, min(100, score))


@dataclass
class Experience:
    """A single role as extracted from the résumé."""
    role: str = ""
    company: str = ""
    duration: str = ""
    description: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Experience":
        return cls(
            role=_text(raw.get("role")),
            company=_text(raw.get("company")),
            duration=_text(raw.get("duration")),
            description=_text_list(raw.get("description")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "company": self.company,
            "duration": self.duration,
            "description": list(self.description),
        }


@dataclass
class Education:
    degree: str = ""
    institution: str = ""
    year: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Education":
        return cls(
            degree=_text(raw.get("degree")),
            institution=_text(raw.get("institution")),
            year=_text(raw.get("year")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"degree": self.degree, "institution": self.institution, "year": self.year}


@dataclass
class ResumeData:
    """
    Structured résumé fields produced by the extraction call.
    """
    name: str = ""
    email: str = ""
    phone: str = ""
    summary: str = ""
    experience: List[Experience] = field(default_factory=list)
    education: List[Education] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)

    @classmethod
    def placeholder(cls) -> "ResumeData":
        """The all-defaults parse used when extraction fails."""
        return cls(name=PLACEHOLDER_NAME)

    @property
    def is_placeholder(self) -> bool:
        return not self.name or self.name == PLACEHOLDER_NAME

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "ResumeData":
        raw = raw if isinstance(raw, dict) else {}
        return cls(
            name=_text(raw.get("name")),
            email=_text(raw.get("email")),
            phone=_text(raw.get("phone")),
            summary=_text(raw.get("summary")),
            experience=[Experience.from_dict(e) for e in _dict_list(raw.get("experience"))],
            education=[Education.from_dict(e) for e in _dict_list(raw.get("education"))],
            skills=_text_list(raw.get("skills")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "summary": self.summary,
            "experience": [e.to_dict() for e in self.experience],
            "education": [e.to_dict() for e in self.education],
            "skills": list(self.skills),
        }


@dataclass
class RoadmapLink:
    title: str = ""
    url: str = ""


@dataclass
class WeeklyRoadmapItem:
    week: str = ""
    goal: str = ""
    focus: str = ""


@dataclass
class SkillRoadmapItem:
    """A learning plan for one missing skill."""
    skill_name: str = ""
    why_it_matters: str = ""
    learning_path: List[str] = field(default_factory=list)
    practice_task: str = ""
    estimated_time: str = ""
    resources: List[RoadmapLink] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SkillRoadmapItem":
        return cls(
            skill_name=_text(raw.get("skillName")),
            why_it_matters=_text(raw.get("whyItMatters")),
            learning_path=_text_list(raw.get("learningPath")),
            practice_task=_text(raw.get("practiceTask")),
            estimated_time=_text(raw.get("estimatedTime")),
            resources=[
                RoadmapLink(title=_text(r.get("title")), url=_text(r.get("url")))
                for r in _dict_list(raw.get("resources"))
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skillName": self.skill_name,
            "whyItMatters": self.why_it_matters,
            "learningPath": list(self.learning_path),
            "practiceTask": self.practice_task,
            "estimatedTime": self.estimated_time,
            "resources": [{"title": r.title, "url": r.url} for r in self.resources],
        }


@dataclass
class AnalysisResult:
    """
    Scores, narrative text and roadmap returned by the scoring call.
    All scores are integers in [0, 100].
    """
    ats_score: int = SCORE_DEFAULTS["ats_score"]
    readability_score: int = SCORE_DEFAULTS["readability_score"]
    keyword_match_score: int = SCORE_DEFAULTS["keyword_match_score"]
    quantified_impact_score: int = SCORE_DEFAULTS["quantified_impact_score"]
    formatting_health_score: int = SCORE_DEFAULTS["formatting_health_score"]
    recruiter_simulation_score: int = SCORE_DEFAULTS["recruiter_simulation_score"]
    missing_keywords: List[str] = field(default_factory=list)
    matched_skills: List[str] = field(default_factory=list)
    tailored_summary: str = DEFAULT_TAILORED_SUMMARY
    enhanced_bullets: List[str] = field(default_factory=list)
    weekly_roadmap: List[WeeklyRoadmapItem] = field(default_factory=list)
    skill_roadmaps: List[SkillRoadmapItem] = field(default_factory=list)
    voice_briefing_text: str = ""

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "AnalysisResult":
        raw = raw if isinstance(raw, dict) else {}
        # The scoring schema calls it missingSkills; older rows use missingKeywords
        missing = raw.get("missingSkills")
        if missing is None:
            missing = raw.get("missingKeywords")
        return cls(
            ats_score=clamp_score(raw.get("atsScore"), SCORE_DEFAULTS["ats_score"]),
            readability_score=clamp_score(raw.get("readabilityScore"), SCORE_DEFAULTS["readability_score"]),
            keyword_match_score=clamp_score(raw.get("keywordMatchScore"), SCORE_DEFAULTS["keyword_match_score"]),
            quantified_impact_score=clamp_score(
                raw.get("quantifiedImpactScore"), SCORE_DEFAULTS["quantified_impact_score"]
            ),
            formatting_health_score=clamp_score(
                raw.get("formattingHealthScore"), SCORE_DEFAULTS["formatting_health_score"]
            ),
            recruiter_simulation_score=clamp_score(
                raw.get("recruiterSimulationScore"), SCORE_DEFAULTS["recruiter_simulation_score"]
            ),
            missing_keywords=_text_list(missing),
            matched_skills=_text_list(raw.get("matchedSkills")),
            tailored_summary=_text(raw.get("tailoredSummary")) or DEFAULT_TAILORED_SUMMARY,
            enhanced_bullets=_text_list(raw.get("enhancedBullets")),
            weekly_roadmap=[
                WeeklyRoadmapItem(
                    week=_text(w.get("week")),
                    goal=_text(w.get("goal")),
                    focus=_text(w.get("focus")),
                )
                for w in _dict_list(raw.get("weeklyRoadmap"))
            ],
            skill_roadmaps=[SkillRoadmapItem.from_dict(s) for s in _dict_list(raw.get("skillRoadmaps"))],
            voice_briefing_text=_text(raw.get("voiceBriefingText")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "atsScore": self.ats_score,
            "readabilityScore": self.readability_score,
            "keywordMatchScore": self.keyword_match_score,
            "quantifiedImpactScore": self.quantified_impact_score,
            "formattingHealthScore": self.formatting_health_score,
            "recruiterSimulationScore": self.recruiter_simulation_score,
            "missingSkills": list(self.missing_keywords),
            "matchedSkills": list(self.matched_skills),
            "tailoredSummary": self.tailored_summary,
            "enhancedBullets": list(self.enhanced_bullets),
            "weeklyRoadmap": [
                {"week": w.week, "goal": w.goal, "focus": w.focus} for w in self.weekly_roadmap
            ],
            "skillRoadmaps": [s.to_dict() for s in self.skill_roadmaps],
            "voiceBriefingText": self.voice_briefing_text,
        }


@dataclass
class HistoryRecord:
    """A stored analysis, as read back from the ``analyses`` table."""
    id: str
    created_at: str
    job_title: str
    job_description: str
    resume_data: ResumeData
    analysis_result: AnalysisResult

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            id=_text(row.get("id")),
            created_at=_text(row.get("created_at")),
            job_title=_text(row.get("job_title")),
            job_description=_text(row.get("job_description")),
            resume_data=ResumeData.from_dict(row.get("resume_data")),
            analysis_result=AnalysisResult.from_dict(row.get("analysis_result")),
        )


@dataclass
class Session:
    """An authenticated identity held by the session store."""
    access_token: str
    user_id: str
    email: str = ""
    display_name: str = ""
    refresh_token: str = ""

    @classmethod
    def from_auth_response(cls, payload: Dict[str, Any]) -> "Session":
        user = payload.get("user") or {}
        metadata = user.get("user_metadata") or {}
        email = _text(user.get("email"))
        return cls(
            access_token=_text(payload.get("access_token")),
            refresh_token=_text(payload.get("refresh_token")),
            user_id=_text(user.get("id")),
            email=email,
            display_name=_text(metadata.get("full_name")) or email,
        )
