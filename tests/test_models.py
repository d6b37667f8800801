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

import json
import unittest

from careercraft.models import (
    DEFAULT_TAILORED_SUMMARY,
    PLACEHOLDER_NAME,
    AnalysisResult,
    HistoryRecord,
    ResumeData,
    Session,
    clamp_score,
)


class TestClampScore(unittest.TestCase):
    def test_passes_through_in_range(self):
        self.assertEqual(clamp_score(82, 70), 82)

    def test_rounds_floats_and_numeric_strings(self):
        self.assertEqual(clamp_score(81.6, 70), 82)
        self.assertEqual(clamp_score("64", 70), 64)

    def test_clamps_out_of_range(self):
        self.assertEqual(clamp_score(140, 70), 100)
        self.assertEqual(clamp_score(-5, 70), 0)

    def test_defaults_for_garbage(self):
        self.assertEqual(clamp_score(None, 70), 70)
        self.assertEqual(clamp_score("high", 70), 70)
        self.assertEqual(clamp_score(True, 70), 70)

    def test_non_finite_scores_get_default(self):
        self.assertEqual(clamp_score(float("inf"), 70), 70)
        self.assertEqual(clamp_score(float("-inf"), 75), 75)
        self.assertEqual(clamp_score(float("nan"), 65), 65)
        self.assertEqual(clamp_score("1e400", 80), 80)

    def test_infinite_score_in_response(self):
        result = AnalysisResult.from_dict(json.loads('{"atsScore": 1e999, "readabilityScore": 90}'))
        self.assertEqual(result.ats_score, 70)
        self.assertEqual(result.readability_score, 90)


class TestAnalysisResult(unittest.TestCase):
    def test_empty_object_gets_every_default(self):
        result = AnalysisResult.from_dict({})
        self.assertEqual(result.ats_score, 70)
        self.assertEqual(result.readability_score, 75)
        self.assertEqual(result.keyword_match_score, 65)
        self.assertEqual(result.quantified_impact_score, 70)
        self.assertEqual(result.formatting_health_score, 75)
        self.assertEqual(result.recruiter_simulation_score, 80)
        self.assertEqual(result.tailored_summary, DEFAULT_TAILORED_SUMMARY)
        self.assertEqual(result.missing_keywords, [])
        self.assertEqual(result.weekly_roadmap, [])
        self.assertEqual(result.skill_roadmaps, [])

    def test_missing_skills_populates_missing_keywords(self):
        result = AnalysisResult.from_dict({"missingSkills": ["Kubernetes"]})
        self.assertEqual(result.missing_keywords, ["Kubernetes"])

    def test_legacy_missing_keywords_key(self):
        result = AnalysisResult.from_dict({"missingKeywords": ["Terraform"]})
        self.assertEqual(result.missing_keywords, ["Terraform"])

    def test_nested_roadmaps(self):
        result = AnalysisResult.from_dict({
            "weeklyRoadmap": [{"week": "Week 1", "goal": "Basics", "focus": "Docker"}, "junk"],
            "skillRoadmaps": [{
                "skillName": "Docker",
                "learningPath": ["Images", "Compose"],
                "resources": [{"title": "Docs", "url": "docs.docker.com"}],
            }],
        })
        self.assertEqual(len(result.weekly_roadmap), 1)
        self.assertEqual(result.weekly_roadmap[0].focus, "Docker")
        skill = result.skill_roadmaps[0]
        self.assertEqual(skill.skill_name, "Docker")
        self.assertEqual(skill.learning_path, ["Images", "Compose"])
        self.assertEqual(skill.resources[0].url, "docs.docker.com")
        self.assertEqual(skill.why_it_matters, "")

    def test_to_dict_uses_wire_names(self):
        data = AnalysisResult(ats_score=91, missing_keywords=["Go"]).to_dict()
        self.assertEqual(data["atsScore"], 91)
        self.assertEqual(data["missingSkills"], ["Go"])
        self.assertEqual(AnalysisResult.from_dict(data).ats_score, 91)


class TestResumeData(unittest.TestCase):
    def test_placeholder(self):
        resume = ResumeData.placeholder()
        self.assertEqual(resume.name, PLACEHOLDER_NAME)
        self.assertTrue(resume.is_placeholder)
        self.assertEqual(resume.experience, [])

    def test_real_name_is_not_placeholder(self):
        self.assertFalse(ResumeData(name="Ada Lovelace").is_placeholder)

    def test_from_dict_tolerates_nulls(self):
        resume = ResumeData.from_dict({
            "name": "Ada",
            "email": None,
            "experience": [{"role": "Engineer", "description": None}],
            "skills": None,
        })
        self.assertEqual(resume.email, "")
        self.assertEqual(resume.experience[0].role, "Engineer")
        self.assertEqual(resume.experience[0].description, [])
        self.assertEqual(resume.skills, [])

    def test_from_dict_non_object(self):
        self.assertEqual(ResumeData.from_dict(None), ResumeData())


class TestHistoryRecord(unittest.TestCase):
    def test_from_row(self):
        record = HistoryRecord.from_row({
            "id": 7,
            "created_at": "2026-10-16T09:30:00Z",
            "job_title": "SRE",
            "job_description": "Keep things up",
            "resume_data": {"name": "Ada"},
            "analysis_result": {"atsScore": 88},
        })
        self.assertEqual(record.id, "7")
        self.assertEqual(record.resume_data.name, "Ada")
        self.assertEqual(record.analysis_result.ats_score, 88)
        self.assertEqual(record.analysis_result.readability_score, 75)


class TestSession(unittest.TestCase):
    def test_display_name_prefers_full_name(self):
        session = Session.from_auth_response({
            "access_token": "at",
            "refresh_token": "rt",
            "user": {"id": "u1", "email": "ada@example.com", "user_metadata": {"full_name": "Ada L"}},
        })
        self.assertEqual(session.user_id, "u1")
        self.assertEqual(session.display_name, "Ada L")
        self.assertEqual(session.refresh_token, "rt")

    def test_display_name_falls_back_to_email(self):
        session = Session.from_auth_response({"access_token": "at", "user": {"id": "u1", "email": "a@b.co"}})
        self.assertEqual(session.display_name, "a@b.co")


if __name__ == '__main__':
    unittest.main()
