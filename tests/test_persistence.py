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
from unittest.mock import MagicMock

import requests

from careercraft.config import Settings
from careercraft.errors import AccessError, PersistenceError, ValidationError
from careercraft.models import AnalysisResult, ResumeData, Session
from careercraft.persistence import PersistenceClient


def _response(status=200, body=None):
    response = MagicMock()
    response.status_code = status
    response.content = json.dumps(body).encode() if body is not None else b""
    response.json.return_value = body
    response.text = json.dumps(body) if body is not None else ""
    return response


class TestPersistenceClient(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(supabase_url="https://proj.supabase.co", supabase_anon_key="anon")
        self.sessions = MagicMock()
        self.sessions.current_session.return_value = Session(access_token="tok", user_id="user-1")
        self.http = MagicMock()
        self.client = PersistenceClient(self.settings, self.sessions, http=self.http)

    def test_save_analysis(self):
        self.http.request.return_value = _response(201)
        resume = ResumeData(name="Ada", skills=["SQL"])
        result = AnalysisResult(ats_score=88, missing_keywords=["Go"])

        self.client.save_analysis("SRE", "Keep it up", resume, result)

        args, kwargs = self.http.request.call_args
        self.assertEqual(args, ("POST", "https://proj.supabase.co/rest/v1/analyses"))
        self.assertEqual(kwargs['headers']['Authorization'], "Bearer tok")
        self.assertEqual(kwargs['headers']['Prefer'], "return=minimal")
        row = kwargs['json'][0]
        self.assertEqual(row['user_id'], "user-1")
        self.assertEqual(row['job_title'], "SRE")
        self.assertEqual(row['resume_data']['skills'], ["SQL"])
        self.assertEqual(row['analysis_result']['atsScore'], 88)
        self.assertEqual(row['analysis_result']['missingSkills'], ["Go"])

    def test_save_analysis_requires_session(self):
        self.sessions.current_session.return_value = None
        with self.assertRaises(AccessError):
            self.client.save_analysis("SRE", "jd", ResumeData(), AnalysisResult())
        self.http.request.assert_not_called()

    def test_save_analysis_server_error(self):
        self.http.request.return_value = _response(401, {"message": "JWT expired"})
        with self.assertRaises(PersistenceError) as ctx:
            self.client.save_analysis("SRE", "jd", ResumeData(), AnalysisResult())
        self.assertEqual(ctx.exception.message, "JWT expired")

    def test_network_error(self):
        self.http.request.side_effect = requests.exceptions.Timeout("slow")
        with self.assertRaises(PersistenceError):
            self.client.list_analyses()

    def test_list_analyses_newest_first(self):
        self.http.request.return_value = _response(200, [
            {"id": 1, "created_at": "2026-10-01T10:00:00Z", "job_title": "Older",
             "resume_data": {}, "analysis_result": {}},
            {"id": 2, "created_at": "2026-10-15T10:00:00Z", "job_title": "Newer",
             "resume_data": {"name": "Ada"}, "analysis_result": {"atsScore": 90}},
        ])

        records = self.client.list_analyses()

        self.assertEqual([r.job_title for r in records], ["Newer", "Older"])
        self.assertEqual(records[0].analysis_result.ats_score, 90)
        self.assertEqual(records[1].analysis_result.ats_score, 70)
        kwargs = self.http.request.call_args.kwargs
        self.assertEqual(kwargs['params'], {"select": "*", "order": "created_at.desc"})

    def test_list_analyses_requires_session(self):
        self.sessions.current_session.return_value = None
        with self.assertRaises(AccessError) as ctx:
            self.client.list_analyses()
        self.assertEqual(ctx.exception.message, "Please sign in to view your history.")

    def test_contact_message(self):
        self.sessions.current_session.return_value = None
        self.http.request.return_value = _response(201)

        self.client.save_contact_message(" Ada ", "ada@example.com", "Hello there")

        args, kwargs = self.http.request.call_args
        self.assertTrue(args[1].endswith("/rest/v1/contact_messages"))
        self.assertEqual(kwargs['json'], [{"name": "Ada", "email": "ada@example.com", "message": "Hello there"}])
        self.assertEqual(kwargs['headers']['Authorization'], "Bearer anon")

    def test_contact_message_validation(self):
        for name, email, message in [("", "a@b.co", "hi"), ("Ada", "not-an-email", "hi"), ("Ada", "a@b.co", "  ")]:
            with self.subTest(email=email):
                with self.assertRaises(ValidationError):
                    self.client.save_contact_message(name, email, message)
        self.http.request.assert_not_called()

    def test_non_json_success_body(self):
        response = _response(200)
        response.content = b"<html>proxy</html>"
        response.text = "<html>proxy</html>"
        response.json.side_effect = ValueError("Expecting value")
        self.http.request.return_value = response

        with self.assertRaises(PersistenceError) as ctx:
            self.client.list_analyses()
        self.assertEqual(ctx.exception.message, "Unexpected response from the database.")
        self.assertIsInstance(ctx.exception.original_error, ValueError)

    def test_unconfigured_backend(self):
        client = PersistenceClient(Settings(), self.sessions, http=self.http)
        with self.assertRaises(PersistenceError):
            client.list_analyses()


if __name__ == '__main__':
    unittest.main()
