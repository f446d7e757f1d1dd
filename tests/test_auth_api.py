from tests.helpers import (
    claims,
    login,
    present_refresh_cookie,
    refresh_cookie,
    register,
)


def test_register_login_scenario(client):
    r = register(client, "Ada", "ada@x.com", "pw123")
    assert r.status_code == 201
    assert r.get_json() == {"success": "New user Ada created!"}

    r = login(client, "ada@x.com", "pw123")
    assert r.status_code == 200
    body = r.get_json()
    assert set(body) == {"accessToken"}
    assert claims(body["accessToken"])["type"] == "access"

    r = login(client, "ada@x.com", "wrong")
    assert r.status_code == 401
    assert r.get_json()["error"] == "INVALID_CREDENTIALS"

    r = register(client, "Bob", "ada@x.com", "pw456")
    assert r.status_code == 409
    assert r.get_json()["error"] == "CONFLICT"


def test_register_response_has_no_tokens(client):
    r = register(client)
    assert "accessToken" not in r.get_json()
    assert refresh_cookie(client) is None


def test_register_missing_fields(client):
    r = client.post("/api/auth/register", json={"email": "ada@x.com", "password": "pw123"})
    assert r.status_code == 400
    assert "nickname" in r.get_json()["details"]

    r = client.post("/api/auth/register", json={"nickname": " ", "email": "ada@x.com", "password": "pw123"})
    assert r.status_code == 400

    r = client.post("/api/auth/register", data="not json", content_type="text/plain")
    assert r.status_code == 400


def test_login_missing_fields(client):
    register(client)
    assert client.post("/api/auth/login", json={"email": "ada@x.com"}).status_code == 400
    assert client.post("/api/auth/login", json={"password": "pw123"}).status_code == 400
    assert client.post("/api/auth/login", json={"email": "", "password": ""}).status_code == 400
    assert client.post("/api/auth/login").status_code == 400


def test_unknown_user_and_wrong_password_look_identical(client):
    register(client)
    wrong = login(client, "ada@x.com", "nope")
    unknown = login(client, "ghost@x.com", "pw123")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_json() == unknown.get_json()


def test_login_sets_http_only_refresh_cookie(client):
    register(client)
    r = login(client)
    set_cookie = r.headers["Set-Cookie"]
    assert set_cookie.startswith("jwt=")
    assert "HttpOnly" in set_cookie
    assert "Path=/api/auth" in set_cookie
    assert "SameSite=Strict" in set_cookie
    assert claims(refresh_cookie(client))["type"] == "refresh"


def test_refresh_rotates_and_replay_is_forbidden(client):
    register(client)
    login(client)
    token_a = refresh_cookie(client)

    r = client.get("/api/auth/refreshToken")
    assert r.status_code == 200
    assert claims(r.get_json()["accessToken"])["type"] == "access"
    token_b = refresh_cookie(client)
    assert token_b and token_b != token_a

    present_refresh_cookie(client, token_a)
    r = client.get("/api/auth/refreshToken")
    assert r.status_code == 403
    assert r.get_json()["error"] == "INVALID_SESSION"

    # reuse revoked the whole session family, B included
    present_refresh_cookie(client, token_b)
    assert client.get("/api/auth/refreshToken").status_code == 403


def test_reuse_revokes_sessions_on_other_devices(app, client):
    register(client)
    phone = app.test_client()
    login(client)
    login(phone)
    stolen = refresh_cookie(client)

    assert client.get("/api/auth/refreshToken").status_code == 200
    present_refresh_cookie(client, stolen)
    assert client.get("/api/auth/refreshToken").status_code == 403

    assert phone.get("/api/auth/refreshToken").status_code == 403
    assert login(phone).status_code == 200


def test_refresh_without_token_is_unauthorized(client):
    r = client.get("/api/auth/refreshToken")
    assert r.status_code == 401
    assert r.get_json()["error"] == "UNAUTHORIZED"


def test_refresh_with_garbage_token_is_forbidden(client):
    present_refresh_cookie(client, "garbage")
    assert client.get("/api/auth/refreshToken").status_code == 403


def test_logout_revokes_and_clears_cookie(client):
    register(client)
    login(client)
    token = refresh_cookie(client)

    r = client.get("/api/auth/logout")
    assert r.status_code == 204
    assert r.data == b""
    assert refresh_cookie(client) is None

    present_refresh_cookie(client, token)
    assert client.get("/api/auth/refreshToken").status_code == 403


def test_logout_is_idempotent(client):
    assert client.get("/api/auth/logout").status_code == 204
    assert client.get("/api/auth/logout").status_code == 204

    register(client)
    login(client)
    assert client.get("/api/auth/logout").status_code == 204
    assert client.get("/api/auth/logout").status_code == 204


def test_relogin_drops_the_previous_refresh_token(client):
    register(client)
    login(client)
    first = refresh_cookie(client)
    login(client)
    second = refresh_cookie(client)
    assert first != second

    assert client.get("/api/auth/refreshToken").status_code == 200


def test_unexpected_failure_is_opaque_500(app, client, monkeypatch):
    register(client)

    def boom(*args, **kwargs):
        raise RuntimeError("database exploded: secret connection string")

    monkeypatch.setattr(app.extensions["auth_flow"].issuer, "issue", boom)
    r = login(client)
    assert r.status_code == 500
    body = r.get_json()
    assert body["error"] == "INTERNAL_ERROR"
    assert "secret" not in r.get_data(as_text=True)
