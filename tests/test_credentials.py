import pytest

import services.credentials as credentials_module
from models import storage
from models.user_store import SQLUserStore
from services.credentials import CredentialVerifier
from services.exceptions import BadRequest, EmailTaken, InvalidCredentials
from utils.security import hash_password, make_password_hasher


@pytest.fixture
def hasher():
    return make_password_hasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def users(app):
    return SQLUserStore(storage)


@pytest.fixture
def verifier(users, hasher):
    return CredentialVerifier(users, hasher)


@pytest.fixture
def ada(users, hasher):
    return users.create("Ada", "ada@x.com", hash_password(hasher, "pw123"))


def test_verify_returns_user_id(verifier, ada):
    assert verifier.verify("ada@x.com", "pw123") == ada.id


def test_email_lookup_ignores_case_and_spaces(verifier, ada):
    assert verifier.verify("  ADA@X.com ", "pw123") == ada.id


def test_wrong_password_and_unknown_user_fail_the_same_way(verifier, ada):
    with pytest.raises(InvalidCredentials) as wrong:
        verifier.verify("ada@x.com", "wrong")
    with pytest.raises(InvalidCredentials) as unknown:
        verifier.verify("nobody@x.com", "pw123")
    assert str(wrong.value) == str(unknown.value)


def test_unknown_user_still_runs_one_hash_comparison(verifier, monkeypatch):
    calls = []
    real = credentials_module.verify_password

    def spy(ph, password, password_hash):
        calls.append(password_hash)
        return real(ph, password, password_hash)

    monkeypatch.setattr(credentials_module, "verify_password", spy)
    with pytest.raises(InvalidCredentials):
        verifier.verify("nobody@x.com", "pw123")
    assert calls == [verifier._dummy_hash]


def test_empty_fields_are_bad_requests(verifier):
    with pytest.raises(BadRequest):
        verifier.verify("", "pw123")
    with pytest.raises(BadRequest):
        verifier.verify("ada@x.com", "")


def test_corrupt_stored_hash_is_a_mismatch(users, verifier):
    users.create("Eve", "eve@x.com", "not-an-argon2-hash")
    with pytest.raises(InvalidCredentials):
        verifier.verify("eve@x.com", "anything")


def test_outdated_hash_is_upgraded_on_login(users):
    weak = make_password_hasher(time_cost=1, memory_cost=8, parallelism=1)
    stronger = make_password_hasher(time_cost=2, memory_cost=16, parallelism=1)
    user = users.create("Ada", "ada@x.com", hash_password(weak, "pw123"))

    CredentialVerifier(users, stronger).verify("ada@x.com", "pw123")

    stored = users.get(user.id).password_hash
    assert not stronger.check_needs_rehash(stored)
    assert stronger.verify(stored, "pw123")


def test_duplicate_email_is_rejected(users, ada):
    with pytest.raises(EmailTaken):
        users.create("Bob", "ADA@x.com", "hash")
