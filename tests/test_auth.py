import base64
import hashlib
import string
import unittest
import urllib.parse

import httpx

from spotify_api.auth import SpotifyPKCEAuth, code_challenge_from_verifier, generate_code_verifier
from tests.fakes import RecordingTransport, form_of, token_response

CONFIG = {
    "spotify_client_id": "example-client-id",
    "spotify_redirect_uri": "wox://plugin/example?action=spotify-auth",
    "spotify_scopes": ["user-read-private", "user-read-email"],
}


class TestPKCEHelpers(unittest.TestCase):
    def test_code_challenge_known_answer(self):
        # RFC 7636, Appendix B
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        self.assertEqual(code_challenge_from_verifier(verifier), "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM")

    def test_code_challenge_matches_sha256_base64url_no_pad(self):
        verifier = "abc"
        expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("utf-8")).digest()).decode("utf-8").rstrip("=")
        self.assertEqual(code_challenge_from_verifier(verifier), expected)
        self.assertNotIn("=", code_challenge_from_verifier(verifier))

    def test_code_verifier_is_64_alphanumeric_chars(self):
        verifier = generate_code_verifier()
        self.assertEqual(len(verifier), 64)
        self.assertTrue(set(verifier) <= set(string.ascii_letters + string.digits))
        self.assertNotEqual(verifier, generate_code_verifier())


class TestAuthorizeUrl(unittest.TestCase):
    def test_begin_oauth_flow_builds_authorize_url(self):
        out = SpotifyPKCEAuth(CONFIG).begin_oauth_flow()
        url = urllib.parse.urlparse(out["auth_url"])
        params = {k: v[0] for k, v in urllib.parse.parse_qs(url.query).items()}

        self.assertEqual(url.netloc, "accounts.spotify.com")
        self.assertEqual(url.path, "/authorize")
        self.assertEqual(params["response_type"], "code")
        self.assertEqual(params["client_id"], "example-client-id")
        self.assertEqual(params["code_challenge_method"], "S256")
        self.assertEqual(params["redirect_uri"], CONFIG["spotify_redirect_uri"])
        self.assertEqual(params["scope"], "user-read-private user-read-email")
        self.assertEqual(params["code_challenge"], code_challenge_from_verifier(out["pkce_pair"].code_verifier))

    def test_missing_redirect_uri_is_rejected(self):
        with self.assertRaises(ValueError):
            SpotifyPKCEAuth({"spotify_client_id": "x"}).get_authorize_url(code_challenge="c")


class TestTokenRequests(unittest.TestCase):
    def test_exchange_code_posts_authorization_code_grant(self):
        transport = RecordingTransport(lambda request: token_response())
        auth = SpotifyPKCEAuth(CONFIG, transport=transport, clock=lambda: 1000.0)

        token = auth.exchange_code_for_token(code="the-code", code_verifier="the-verifier")

        self.assertEqual(token.access_token, "new-access")
        self.assertEqual(token.refresh_token, "new-refresh")
        self.assertEqual(token.expires, 4600.0)

        form = form_of(transport.requests[0])
        self.assertEqual(str(transport.requests[0].url), "https://accounts.spotify.com/api/token")
        self.assertEqual(form["grant_type"], "authorization_code")
        self.assertEqual(form["code"], "the-code")
        self.assertEqual(form["code_verifier"], "the-verifier")
        self.assertEqual(form["client_id"], "example-client-id")

    def test_exchange_http_error_logs_body_and_returns_empty_token(self):
        transport = RecordingTransport(lambda request: httpx.Response(400, text='{"error": "invalid_grant"}'))
        auth = SpotifyPKCEAuth(CONFIG, transport=transport)

        with self.assertLogs("spotify_api.auth", level="ERROR") as logs:
            token = auth.exchange_code_for_token(code="bad", code_verifier="v")

        self.assertTrue(token.is_empty)
        self.assertIn("invalid_grant", "\n".join(logs.output))

    def test_exchange_transport_error_returns_empty_token(self):
        def _boom(request):
            raise httpx.ConnectError("offline", request=request)

        auth = SpotifyPKCEAuth(CONFIG, transport=httpx.MockTransport(_boom))
        with self.assertLogs("spotify_api.auth", level="ERROR"):
            token = auth.exchange_code_for_token(code="c", code_verifier="v")
        self.assertTrue(token.is_empty)

    def test_refresh_keeps_refresh_token_when_omitted(self):
        transport = RecordingTransport(lambda request: token_response(refresh_token=None))
        auth = SpotifyPKCEAuth(CONFIG, transport=transport, clock=lambda: 0.0)

        token = auth.refresh_access_token(refresh_token="old-refresh")

        self.assertEqual(token.access_token, "new-access")
        self.assertEqual(token.refresh_token, "old-refresh")
        self.assertEqual(token.expires, 3600.0)
        form = form_of(transport.requests[0])
        self.assertEqual(form["grant_type"], "refresh_token")
        self.assertEqual(form["refresh_token"], "old-refresh")


class TestMalformedTokenResponses(unittest.TestCase):
    def test_undecodable_body_returns_empty_token(self):
        transport = RecordingTransport(lambda request: httpx.Response(200, content=b"\x80\x81\xfe"))
        auth = SpotifyPKCEAuth(CONFIG, transport=transport)

        with self.assertLogs("spotify_api.auth", level="ERROR") as logs:
            token = auth.exchange_code_for_token(code="c", code_verifier="v")

        self.assertTrue(token.is_empty)
        self.assertIn("not JSON", "\n".join(logs.output))

    def test_html_body_on_refresh_returns_empty_token(self):
        transport = RecordingTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        auth = SpotifyPKCEAuth(CONFIG, transport=transport)

        with self.assertLogs("spotify_api.auth", level="ERROR"):
            token = auth.refresh_access_token(refresh_token="rt")

        self.assertTrue(token.is_empty)

    def test_non_numeric_expires_in_on_exchange_returns_empty_token(self):
        transport = RecordingTransport(lambda request: token_response(expires_in="soon"))
        auth = SpotifyPKCEAuth(CONFIG, transport=transport)

        with self.assertLogs("spotify_api.auth", level="ERROR") as logs:
            token = auth.exchange_code_for_token(code="c", code_verifier="v")

        self.assertTrue(token.is_empty)
        self.assertIn("malformed token", "\n".join(logs.output))

    def test_non_numeric_expires_in_on_refresh_returns_empty_token(self):
        transport = RecordingTransport(lambda request: token_response(expires_in="soon"))
        auth = SpotifyPKCEAuth(CONFIG, transport=transport)

        with self.assertLogs("spotify_api.auth", level="ERROR"):
            token = auth.refresh_access_token(refresh_token="rt")

        self.assertTrue(token.is_empty)


if __name__ == "__main__":
    unittest.main(verbosity=2)
