import pytest

from services.exceptions import (
    BadRequest,
    EmailTaken,
    InvalidCredentials,
    InvalidSession,
    MissingRefreshToken,
)
from tests.helpers import claims


@pytest.fixture
def ada(flow):
    return flow.register("Ada", "ada@x.com", "pw123")


def test_register_stores_hashed_password(flow, ada):
    assert ada.nickname == "Ada"
    assert ada.email == "ada@x.com"
    assert ada.password_hash != "pw123"
    assert ada.password_hash.startswith("$argon2")


def test_register_duplicate_email_conflicts_regardless_of_case(flow, ada):
    with pytest.raises(EmailTaken):
        flow.register("Bob", "ada@x.com", "pw456")
    with pytest.raises(EmailTaken):
        flow.register("Bob", "Ada@X.com", "pw456")


def test_register_requires_all_fields(flow):
    with pytest.raises(BadRequest):
        flow.register("", "ada@x.com", "pw123")


def test_login_issues_pair_for_valid_credentials(flow, ada):
    pair = flow.login("ada@x.com", "pw123")
    assert claims(pair.access_token)["sub"] == ada.id
    assert flow.issuer.store.get(claims(pair.refresh_token)["jti"]).user_id == ada.id


def test_each_login_starts_a_new_session(flow, ada):
    first = flow.login("ada@x.com", "pw123")
    second = flow.login("ada@x.com", "pw123")
    assert first.family_id != second.family_id
    assert flow.issuer.store.get(claims(first.refresh_token)["jti"]) is not None
    assert flow.issuer.store.get(claims(second.refresh_token)["jti"]) is not None


def test_login_gives_up_previously_held_refresh_token(flow, ada):
    old = flow.login("ada@x.com", "pw123")
    new = flow.login("ada@x.com", "pw123", presented_refresh=old.refresh_token)
    assert flow.issuer.store.get(claims(old.refresh_token)["jti"]) is None
    assert flow.issuer.store.get(claims(new.refresh_token)["jti"]) is not None


def test_login_failures(flow, ada):
    with pytest.raises(BadRequest):
        flow.login("", "pw123")
    with pytest.raises(BadRequest):
        flow.login("ada@x.com", None)
    with pytest.raises(InvalidCredentials):
        flow.login("ada@x.com", "wrong")


def test_refresh_requires_a_token(flow):
    with pytest.raises(MissingRefreshToken):
        flow.refresh(None)
    with pytest.raises(MissingRefreshToken):
        flow.refresh("")


def test_logout_then_refresh_is_rejected(flow, ada):
    pair = flow.login("ada@x.com", "pw123")
    flow.logout(pair.refresh_token)
    with pytest.raises(InvalidSession):
        flow.refresh(pair.refresh_token)


def test_logout_never_fails(flow, ada, monkeypatch):
    pair = flow.login("ada@x.com", "pw123")
    assert flow.logout(pair.refresh_token) is None
    assert flow.logout(pair.refresh_token) is None
    assert flow.logout(None) is None
    assert flow.logout("garbage") is None

    def broken(jti):
        raise RuntimeError("store down")

    other = flow.login("ada@x.com", "pw123")
    monkeypatch.setattr(flow.issuer.store, "delete", broken)
    assert flow.logout(other.refresh_token) is None
