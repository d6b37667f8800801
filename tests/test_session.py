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
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

from careercraft.config import Settings
from careercraft.errors import (
    AuthError,
    DuplicateAccountError,
    ExpiredResetLinkError,
    InvalidCredentialsError,
    WeakPasswordError,
)
from careercraft import session as session_mod
from careercraft.session import SessionStore


def _response(status=200, body=None):
    response = MagicMock()
    response.status_code = status
    response.content = json.dumps(body).encode() if body is not None else b""
    response.json.return_value = body
    return response


AUTH_PAYLOAD = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "user": {"id": "user-1", "email": "ada@example.com", "user_metadata": {"full_name": "Ada Lovelace"}},
}


class TestSessionStore(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.settings = Settings(supabase_url="https://proj.supabase.co", supabase_anon_key="anon",
                                 home=Path(self.test_dir))
        self.http = MagicMock()
        self.store = SessionStore(self.settings, http=self.http)
        self.events = []
        self.store.subscribe(lambda event, session: self.events.append((event, session)))

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_sign_in(self):
        self.http.request.return_value = _response(200, AUTH_PAYLOAD)

        session = self.store.sign_in("ada@example.com", "pw")

        self.assertEqual(session.user_id, "user-1")
        self.assertEqual(session.display_name, "Ada Lovelace")
        self.assertIs(self.store.current_session(), session)
        self.assertEqual(self.events, [(session_mod.SIGNED_IN, session)])

        args, kwargs = self.http.request.call_args
        self.assertEqual(args, ("POST", "https://proj.supabase.co/auth/v1/token"))
        self.assertEqual(kwargs['params'], {"grant_type": "password"})
        self.assertEqual(kwargs['headers']['apikey'], "anon")

        cached = json.loads((Path(self.test_dir) / ".session.json").read_text())
        self.assertEqual(cached, {"refresh_token": "refresh-1"})

    def test_sign_in_bad_credentials(self):
        self.http.request.return_value = _response(400, {"error_code": "invalid_credentials",
                                                         "msg": "Invalid login credentials"})
        with self.assertRaises(InvalidCredentialsError) as ctx:
            self.store.sign_in("ada@example.com", "wrong")
        self.assertEqual(ctx.exception.message, "Invalid login credentials")
        self.assertIsNone(self.store.current_session())
        self.assertEqual(self.events, [])

    def test_error_mapping(self):
        cases = [
            ({"error_code": "user_already_exists", "msg": "User already registered"}, DuplicateAccountError),
            ({"msg": "User already registered"}, DuplicateAccountError),
            ({"error_code": "weak_password", "msg": "Password should be at least 6 characters"}, WeakPasswordError),
            ({"error_code": "otp_expired", "msg": "Token has expired"}, ExpiredResetLinkError),
            ({"error": "mystery"}, AuthError),
        ]
        for body, expected in cases:
            with self.subTest(body=body):
                self.http.request.return_value = _response(422, body)
                with self.assertRaises(expected):
                    self.store.sign_up("ada@example.com", "pw")

    def test_network_failure(self):
        self.http.request.side_effect = requests.exceptions.ConnectionError("offline")
        with self.assertRaises(AuthError) as ctx:
            self.store.sign_in("ada@example.com", "pw")
        self.assertIsInstance(ctx.exception.original_error, requests.exceptions.ConnectionError)

    def test_sign_up_pending_confirmation(self):
        self.http.request.return_value = _response(200, {"id": "user-1", "email": "ada@example.com"})
        self.assertIsNone(self.store.sign_up("ada@example.com", "pw", "Ada"))
        self.assertIsNone(self.store.current_session())
        payload = self.http.request.call_args.kwargs['json']
        self.assertEqual(payload["data"], {"full_name": "Ada"})

    def test_sign_up_auto_confirmed(self):
        self.http.request.return_value = _response(200, AUTH_PAYLOAD)
        session = self.store.sign_up("ada@example.com", "pw", "Ada")
        self.assertEqual(session.access_token, "access-1")
        self.assertEqual(self.events[0][0], session_mod.SIGNED_IN)

    def test_sign_out_clears_even_when_server_fails(self):
        self.http.request.return_value = _response(200, AUTH_PAYLOAD)
        self.store.sign_in("ada@example.com", "pw")
        self.http.request.return_value = _response(500, {"msg": "boom"})

        self.store.sign_out()

        self.assertIsNone(self.store.current_session())
        self.assertFalse((Path(self.test_dir) / ".session.json").exists())
        self.assertEqual(self.events[-1], (session_mod.SIGNED_OUT, None))

    def test_restore_from_cache(self):
        (Path(self.test_dir) / ".session.json").write_text(json.dumps({"refresh_token": "old"}))
        self.http.request.return_value = _response(200, AUTH_PAYLOAD)

        session = self.store.restore()

        self.assertEqual(session.user_id, "user-1")
        kwargs = self.http.request.call_args.kwargs
        self.assertEqual(kwargs['params'], {"grant_type": "refresh_token"})
        self.assertEqual(kwargs['json'], {"refresh_token": "old"})

    def test_restore_with_stale_token_clears_cache(self):
        cache = Path(self.test_dir) / ".session.json"
        cache.write_text(json.dumps({"refresh_token": "old"}))
        self.http.request.return_value = _response(400, {"error_code": "refresh_token_not_found"})

        self.assertIsNone(self.store.restore())
        self.assertFalse(cache.exists())

    def test_restore_without_cache(self):
        self.assertIsNone(self.store.restore())
        self.http.request.assert_not_called()

    def test_recovery_flow(self):
        self.http.request.return_value = _response(200, {"email": "ada@example.com"})
        self.store.request_password_reset("ada@example.com")
        self.assertIn("/auth/v1/recover", self.http.request.call_args[0][1])

        self.http.request.return_value = _response(200, AUTH_PAYLOAD)
        self.store.verify_recovery("ada@example.com", "123456")
        self.assertEqual(self.events[-1][0], session_mod.PASSWORD_RECOVERY)

        self.http.request.return_value = _response(200, {"id": "user-1"})
        self.store.confirm_password_reset("n3w-Passw0rd")
        args, kwargs = self.http.request.call_args
        self.assertEqual(args[0], "PUT")
        self.assertEqual(kwargs['headers']['Authorization'], "Bearer access-1")
        self.assertEqual(self.events[-1][0], session_mod.USER_UPDATED)

    def test_confirm_reset_without_session(self):
        with self.assertRaises(ExpiredResetLinkError):
            self.store.confirm_password_reset("pw")

    def test_unsubscribe_and_listener_errors(self):
        def broken(event, session):
            raise RuntimeError("listener bug")

        self.store.subscribe(broken)
        unsubscribe = self.store.subscribe(lambda e, s: self.events.append(("second", s)))
        unsubscribe()

        self.http.request.return_value = _response(200, AUTH_PAYLOAD)
        with self.assertLogs('careercraft.session', level='ERROR'):
            self.store.sign_in("ada@example.com", "pw")
        self.assertEqual([e for e, _ in self.events], [session_mod.SIGNED_IN])

    def test_unconfigured_backend(self):
        store = SessionStore(Settings(home=Path(self.test_dir)), http=self.http)
        with self.assertRaises(AuthError):
            store.sign_in("ada@example.com", "pw")
        self.http.request.assert_not_called()


if __name__ == '__main__':
    unittest.main()
