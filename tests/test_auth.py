from pathlib import Path
import json
import sys

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio.auth import AuthSession, storage_key
from studio.platform import AuthError, PlatformError

SESSION = {"access_token": "tok", "user": {"id": "u1", "email": "ada@example.com"}}
PROFILE = {"id": "u1", "full_name": "Ada", "role": "admin"}


def _signed_in_routes(recorder):
    recorder.routes[("POST", "/auth/v1/token")] = SESSION
    recorder.routes[("GET", "/rest/v1/profiles")] = PROFILE


def test_storage_key_uses_project_ref():
    assert storage_key("https://abcd.supabase.co") == "sb-abcd-auth-token"


def test_sign_in_loads_user_and_profile(platform, recorder):
    _signed_in_routes(recorder)
    storage = {}
    auth = AuthSession(platform, storage=storage)

    assert auth.sign_in("ada@example.com", "pw") is None
    assert auth.is_authenticated
    assert auth.is_admin
    assert auth.display_name == "Ada"
    assert json.loads(storage["sb-abcd-auth-token"])["access_token"] == "tok"

    profile_request = recorder.calls("GET", "/rest/v1/profiles")[0]
    assert profile_request.url.params["id"] == "eq.u1"
    assert profile_request.headers["Authorization"] == "Bearer tok"


def test_sign_in_failure_returns_error(platform, recorder):
    recorder.routes[("POST", "/auth/v1/token")] = (400, {"error_description": "Invalid login credentials"})
    auth = AuthSession(platform)

    error = auth.sign_in("ada@example.com", "wrong")
    assert isinstance(error, PlatformError)
    assert error.message == "Invalid login credentials"
    assert not auth.is_authenticated


def test_missing_profile_falls_back_to_defaults(platform, recorder):
    recorder.routes[("POST", "/auth/v1/token")] = SESSION
    recorder.routes[("GET", "/rest/v1/profiles")] = (406, {"message": "no rows"})
    auth = AuthSession(platform)
    auth.sign_in("ada@example.com", "pw")

    assert auth.profile is None
    assert auth.display_name == "User"
    assert not auth.is_admin


def test_sign_up_without_session_waits_for_confirmation(platform, recorder):
    recorder.routes[("POST", "/auth/v1/signup")] = {"id": "u2", "email": "new@example.com"}
    auth = AuthSession(platform)

    assert auth.sign_up("new@example.com", "pw", "New User") is None
    assert not auth.is_authenticated
    body = recorder.body(recorder.requests[0])
    assert body["data"] == {"full_name": "New User"}


def test_sign_out_clears_storage_even_when_remote_fails(platform, recorder):
    _signed_in_routes(recorder)
    recorder.routes[("POST", "/auth/v1/logout")] = (500, {"message": "down"})
    storage = {"sb-other-key": "x", "unrelated": "keep"}
    auth = AuthSession(platform, storage=storage)
    auth.sign_in("ada@example.com", "pw")

    auth.sign_out()

    assert storage == {"unrelated": "keep"}
    assert auth.user is None and auth.profile is None
    assert platform.access_token is None
    logout = recorder.calls("POST", "/auth/v1/logout")[0]
    assert logout.headers["Authorization"] == "Bearer tok"


def test_restore_from_storage(platform, recorder):
    recorder.routes[("GET", "/auth/v1/user")] = SESSION["user"]
    recorder.routes[("GET", "/rest/v1/profiles")] = PROFILE
    storage = {"sb-abcd-auth-token": json.dumps({"access_token": "tok"})}
    auth = AuthSession(platform, storage=storage)

    assert auth.restore() is True
    assert auth.user["id"] == "u1"
    assert platform.access_token == "tok"


def test_restore_with_expired_token_clears_storage(platform, recorder):
    recorder.routes[("GET", "/auth/v1/user")] = (401, {"msg": "JWT expired"})
    storage = {"sb-abcd-auth-token": json.dumps({"access_token": "old"})}
    auth = AuthSession(platform, storage=storage)

    assert auth.restore() is False
    assert storage == {}


def test_require_user_raises_when_signed_out(platform):
    with pytest.raises(AuthError, match="not authenticated"):
        AuthSession(platform).require_user()


def test_reset_password_passes_redirect(platform, recorder):
    recorder.routes[("POST", "/auth/v1/recover")] = {}
    auth = AuthSession(platform, redirect_url="https://studio.example.com")

    assert auth.reset_password("ada@example.com") is None
    assert recorder.requests[0].url.params["redirect_to"] == "https://studio.example.com"


def test_update_password_reports_error(platform, recorder):
    recorder.routes[("PUT", "/auth/v1/user")] = (422, {"msg": "Password should be at least 6 characters"})
    error = AuthSession(platform).update_password("x")
    assert error.message == "Password should be at least 6 characters"


def test_network_errors_become_platform_errors(platform, recorder):
    def boom(request):
        raise httpx.ConnectError("offline", request=request)

    recorder.routes[("POST", "/auth/v1/token")] = boom
    error = AuthSession(platform).sign_in("a@b.c", "pw")
    assert isinstance(error, PlatformError)
    assert "offline" in error.message
