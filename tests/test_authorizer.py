import unittest
from unittest.mock import MagicMock

from fastapi import Request

from butaca.auth.dependencies import authorize, extract_token
from butaca.auth.errors import InvalidTokenType, Unauthorized
from butaca.models.SessionToken import TokenPayload


def make_request(headers=None, query=""):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/users/me",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "query_string": query.encode(),
    }
    return Request(scope)


class TestExtractToken(unittest.TestCase):

    def test_bearer_header_wins(self):
        request = make_request({"Authorization": "Bearer header-token", "X-Auth-Token": "custom"}, "token=query")
        self.assertEqual(extract_token(request), "header-token")

    def test_bearer_scheme_is_case_insensitive(self):
        self.assertEqual(extract_token(make_request({"Authorization": "bearer abc.def.ghi"})), "abc.def.ghi")

    def test_custom_header_is_second(self):
        request = make_request({"X-Auth-Token": "custom"}, "token=query")
        self.assertEqual(extract_token(request), "custom")

    def test_non_bearer_authorization_falls_through(self):
        request = make_request({"Authorization": "Basic dXNlcjpwYXNz", "X-Auth-Token": "custom"})
        self.assertEqual(extract_token(request), "custom")

    def test_query_parameter_is_last_resort(self):
        self.assertEqual(extract_token(make_request(query="token=query")), "query")

    def test_query_parameter_can_be_disabled(self):
        self.assertIsNone(extract_token(make_request(query="token=query"), allow_query=False))

    def test_no_token(self):
        self.assertIsNone(extract_token(make_request()))


class TestAuthorize(unittest.TestCase):

    def test_missing_token_is_unauthorized(self):
        manager = MagicMock()
        with self.assertRaises(Unauthorized) as ctx:
            authorize(make_request(), manager)
        self.assertEqual(ctx.exception.reason, "missing")
        manager.verify.assert_not_called()

    def test_identity_comes_from_verified_payload(self):
        payload = TokenPayload(iss="Butaca10", aud="butaca10-app", iat=1, exp=2, user_id=42, type="access")
        manager = MagicMock()
        manager.verify.return_value = payload

        identity = authorize(make_request({"Authorization": "Bearer abc"}), manager)

        manager.verify.assert_called_once_with("abc")
        self.assertEqual(identity.user_id, 42)
        self.assertIs(identity.payload, payload)

    def test_refresh_token_is_not_a_bearer_credential(self):
        payload = TokenPayload(iss="Butaca10", aud="butaca10-app", iat=1, exp=2, user_id=42, type="refresh")
        manager = MagicMock()
        manager.verify.return_value = payload

        with self.assertRaises(InvalidTokenType) as ctx:
            authorize(make_request({"Authorization": "Bearer abc"}), manager)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.error_code, "INVALID_TOKEN_TYPE")

    def test_verification_failure_propagates(self):
        manager = MagicMock()
        manager.verify.side_effect = Unauthorized(reason="revoked")
        with self.assertRaises(Unauthorized) as ctx:
            authorize(make_request({"X-Auth-Token": "abc"}), manager)
        self.assertEqual(ctx.exception.reason, "revoked")


if __name__ == "__main__":
    unittest.main()
