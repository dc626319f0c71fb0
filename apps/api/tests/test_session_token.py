import pytest

from services.passwords import hash_password, password_too_long, verify_password
from services.session_token import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
)


def test_access_token_carries_identity_claims(test_settings):
    issued = create_access_token("user-1", email="a@example.com", username="alice", settings=test_settings)
    payload = decode_token(issued["token"], ACCESS_TOKEN_TYPE, test_settings)

    assert payload["sub"] == "user-1"
    assert payload["username"] == "alice"
    assert payload["exp"] == issued["expires_at"]


def test_token_types_and_secrets_are_not_interchangeable(test_settings):
    access = create_access_token("user-1", settings=test_settings)["token"]
    refresh = create_refresh_token("user-1", settings=test_settings)["token"]

    with pytest.raises(ValueError):
        decode_token(access, REFRESH_TOKEN_TYPE, test_settings)
    with pytest.raises(ValueError):
        decode_token(refresh, ACCESS_TOKEN_TYPE, test_settings)
    with pytest.raises(ValueError):
        decode_token("garbage", ACCESS_TOKEN_TYPE, test_settings)


def test_refresh_tokens_are_unique_per_issue(test_settings):
    first = create_refresh_token("user-1", settings=test_settings)["token"]
    second = create_refresh_token("user-1", settings=test_settings)["token"]
    assert first != second


def test_password_hashing(test_settings):
    hashed = hash_password("correct horse battery", test_settings.BCRYPT_ROUNDS)
    assert hashed != "correct horse battery"
    assert verify_password("correct horse battery", hashed)
    assert not verify_password("wrong", hashed)
    assert password_too_long("é" * 40)
    assert not password_too_long("short")


def test_password_cost_comes_from_the_caller():
    assert hash_password("correct horse battery", 5).startswith("$2b$05$")
    # below the bcrypt minimum is raised to 4
    low = hash_password("correct horse battery", 1)
    assert low.startswith("$2b$04$")
    assert verify_password("correct horse battery", low)
