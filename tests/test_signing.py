import base64
import json
import unittest

from jose import jws

from butaca.auth import signing
from butaca.auth.errors import InvalidSignature, MalformedToken, TokenExpired

SECRET = "unit-test-secret"
NOW = 1_700_000_000


def b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def make_payload(**overrides):
    payload = signing.build_payload(
        issuer="Butaca10",
        audience="butaca10-app",
        user_id=42,
        token_type="access",
        issued_at=NOW,
        lifetime=3600,
        data={"name": "Alice", "email": "alice@example.com", "avatar": None},
    )
    payload.update(overrides)
    return payload


class TestSigning(unittest.TestCase):

    def setUp(self):
        self.token = signing.sign(signing.HEADER, make_payload(), SECRET)

    def test_token_has_three_unpadded_segments(self):
        segments = self.token.split(".")
        self.assertEqual(len(segments), 3)
        for segment in segments:
            self.assertNotIn("=", segment)
            self.assertNotIn("+", segment)
            self.assertNotIn("/", segment)

    def test_header_declares_hs256_jwt(self):
        header = json.loads(b64url_decode(self.token.split(".")[0]))
        self.assertEqual(header, {"typ": "JWT", "alg": "HS256"})

    def test_verify_returns_payload(self):
        payload = signing.verify(self.token, SECRET, now=NOW + 10)
        self.assertEqual(payload["user_id"], 42)
        self.assertEqual(payload["type"], "access")
        self.assertEqual(payload["iss"], "Butaca10")
        self.assertEqual(payload["aud"], "butaca10-app")
        self.assertEqual(payload["exp"], NOW + 3600)
        self.assertEqual(payload["data"]["email"], "alice@example.com")

    def test_payload_mutation_fails_at_every_position(self):
        header, body, signature = self.token.split(".")
        for i, char in enumerate(body):
            replacement = "A" if char != "A" else "B"
            tampered = f"{header}.{body[:i]}{replacement}{body[i + 1:]}.{signature}"
            with self.assertRaises(InvalidSignature, msg=f"position {i}"):
                signing.verify(tampered, SECRET, now=NOW + 10)

    def test_wrong_secret_fails(self):
        with self.assertRaises(InvalidSignature):
            signing.verify(self.token, "another-secret", now=NOW + 10)

    def test_malformed_tokens(self):
        for bad in ["", "abc", "a.b", "a.b.c.d", None, 12345]:
            with self.assertRaises(MalformedToken, msg=repr(bad)):
                signing.verify(bad, SECRET, now=NOW)

    def test_garbage_segments_are_invalid_signature(self):
        with self.assertRaises(InvalidSignature):
            signing.verify("not.a.token", SECRET, now=NOW)

    def test_expired_token(self):
        with self.assertRaises(TokenExpired):
            signing.verify(self.token, SECRET, now=NOW + 3601)

    def test_expiry_boundary_is_exclusive(self):
        with self.assertRaises(TokenExpired):
            signing.verify(self.token, SECRET, now=NOW + 3600)
        signing.verify(self.token, SECRET, now=NOW + 3599)

    def test_expired_check_runs_after_signature(self):
        expired = signing.sign(signing.HEADER, make_payload(exp=NOW - 1), SECRET)
        with self.assertRaises(InvalidSignature):
            signing.verify(expired, "wrong", now=NOW)
        with self.assertRaises(TokenExpired):
            signing.verify(expired, SECRET, now=NOW)

    def test_payload_without_exp_never_expires(self):
        payload = make_payload()
        del payload["exp"]
        token = signing.sign(signing.HEADER, payload, SECRET)
        self.assertEqual(signing.verify(token, SECRET, now=NOW * 2)["user_id"], 42)

    def test_non_object_payload_is_rejected(self):
        token = jws.sign(b"[1, 2, 3]", SECRET, algorithm="HS256")
        with self.assertRaises(InvalidSignature):
            signing.verify(token, SECRET, now=NOW)

        token = jws.sign(b"not json at all", SECRET, algorithm="HS256")
        with self.assertRaises(InvalidSignature):
            signing.verify(token, SECRET, now=NOW)

    def test_tokens_minted_together_differ(self):
        first = signing.sign(signing.HEADER, make_payload(), SECRET)
        second = signing.sign(signing.HEADER, make_payload(), SECRET)
        self.assertNotEqual(first, second)


if __name__ == "__main__":
    unittest.main()
