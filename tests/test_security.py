import pathlib
import sys
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notification_client.infrastructure.security import (
    get_token_expiry,
    is_token_expired,
    read_unverified_claims,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _token(**claims):
    return jwt.encode({"sub": "user-1", **claims}, "not-the-server-secret", algorithm="HS256")


def test_claims_are_read_without_the_signing_key():
    claims = read_unverified_claims(_token(role="admin"))

    assert claims["sub"] == "user-1"
    assert claims["role"] == "admin"


def test_expiry_is_returned_as_aware_datetime():
    expiry = NOW + timedelta(minutes=30)

    assert get_token_expiry(_token(exp=int(expiry.timestamp()))) == expiry


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (timedelta(minutes=-1), True),
        (timedelta(seconds=0), True),
        (timedelta(minutes=5), False),
    ],
)
def test_is_token_expired(offset, expected):
    token = _token(exp=int((NOW + offset).timestamp()))

    assert is_token_expired(token, now=lambda: NOW) is expected


def test_leeway_treats_almost_expired_tokens_as_expired():
    token = _token(exp=int((NOW + timedelta(seconds=20)).timestamp()))

    assert is_token_expired(token, now=lambda: NOW, leeway=30) is True


@pytest.mark.parametrize("token", [None, "", "opaque-session-token", "a.b.c"])
def test_opaque_or_missing_tokens_are_not_expired(token):
    assert is_token_expired(token, now=lambda: NOW) is False


def test_token_without_exp_is_not_expired():
    assert get_token_expiry(_token()) is None
    assert is_token_expired(_token(), now=lambda: NOW) is False


def test_non_numeric_exp_is_ignored():
    assert get_token_expiry(_token(exp="tomorrow")) is None
