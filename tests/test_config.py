"""VAPID credentials and store settings validation."""
import pytest

from ownly_push.core.config import (
    DEFAULT_VAPID_SUBJECT,
    Settings,
    VapidCredentials,
    require_store_settings,
)
from ownly_push.core.database import database_url_for
from ownly_push.core.errors import ConfigurationError
from ownly_push.webpush.encoding import b64url_decode
from ownly_push.webpush.vapid import generate_vapid_keys


def _settings(**overrides) -> Settings:
    public_key, private_key = generate_vapid_keys()
    values = {"vapid_public_key": public_key, "vapid_private_key": private_key}
    values.update(overrides)
    return Settings(**values)


@pytest.mark.parametrize("field", ["vapid_public_key", "vapid_private_key"])
def test_missing_keys(field):
    with pytest.raises(ConfigurationError, match="VAPID keys not configured"):
        VapidCredentials.from_settings(_settings(**{field: ""}))


def test_mismatched_pair():
    other_public, _ = generate_vapid_keys()
    with pytest.raises(ConfigurationError, match="does not match"):
        VapidCredentials.from_settings(_settings(vapid_public_key=other_public))


def test_wrong_lengths():
    with pytest.raises(ConfigurationError, match="65-byte"):
        VapidCredentials.from_settings(_settings(vapid_public_key="BAAA"))
    with pytest.raises(ConfigurationError, match="32 bytes"):
        VapidCredentials.from_settings(_settings(vapid_private_key="AAAA"))


def test_subject_must_be_mailto_or_https():
    with pytest.raises(ConfigurationError, match="VAPID_SUBJECT"):
        VapidCredentials.from_settings(_settings(vapid_subject="admin@ownly.app"))
    creds = VapidCredentials.from_settings(_settings(vapid_subject="https://ownly.app/contact"))
    assert creds.subject == "https://ownly.app/contact"


def test_blank_subject_falls_back_to_default():
    assert _settings(vapid_subject="").vapid_subject == DEFAULT_VAPID_SUBJECT


def test_padded_keys_are_normalized():
    public_key, private_key = generate_vapid_keys()
    creds = VapidCredentials.from_settings(
        _settings(vapid_public_key=public_key + "=", vapid_private_key=f"  {private_key}\n")
    )
    assert creds.public_key == public_key
    assert creds.private_key_bytes == b64url_decode(private_key)


def test_store_settings_required():
    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        require_store_settings(_settings(database_url=""))
    require_store_settings(_settings(database_url="sqlite:///:memory:"))


def test_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        _settings(push_max_concurrency=0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db/ownly", "postgresql+psycopg://u:p@db/ownly"),
        ("postgresql://u:p@db/ownly", "postgresql+psycopg://u:p@db/ownly"),
        ("postgresql+psycopg://u:p@db/ownly", "postgresql+psycopg://u:p@db/ownly"),
        ("sqlite:///:memory:", "sqlite:///:memory:"),
        ("", "sqlite:///./ownly_push.db"),
    ],
)
def test_database_url_normalization(raw, expected):
    assert database_url_for(raw) == expected
