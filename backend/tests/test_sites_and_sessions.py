from datetime import timedelta

import pytest
from jose import jwt

from stockroom.config import Settings, get_settings
from stockroom.errors import Forbidden, InvalidSite, Unauthorized
from stockroom.models import UserRole
from stockroom.security import (
    ALGORITHM,
    SessionData,
    create_session,
    hash_password,
    read_session,
    require_role,
    verify_password,
)
from stockroom.sites import (
    WAREHOUSE_KEY,
    all_sites,
    normalize_site_key,
    resolve_partition,
    resolve_site,
    validate_registry,
)


def test_normalize_strips_punctuation_and_uppercases():
    assert normalize_site_key("Sup'ptic") == "SUPPTIC"
    assert normalize_site_key(" enam ") == "ENAM"


def test_resolve_site_maps_display_name_to_partition():
    site = resolve_site("SUP'PTIC")
    assert site.key == "SUPPTIC"
    assert site.display_name == "SUP'PTIC"
    assert site.partition == get_settings().partition_supptic


def test_resolve_site_rejects_unknown_and_warehouse():
    with pytest.raises(InvalidSite):
        resolve_site("ATLANTIS")
    with pytest.raises(InvalidSite):
        resolve_site(WAREHOUSE_KEY)
    assert resolve_partition("warehouse").is_warehouse


def test_every_site_has_its_own_partition():
    partitions = [s.partition for s in all_sites()]
    assert len(partitions) == 4
    assert len(set(partitions)) == 4


def test_validate_registry_rejects_shared_partition():
    settings = Settings(PARTITION_ENAM="shared", PARTITION_ISMP="shared")
    with pytest.raises(RuntimeError):
        validate_registry(settings)


def test_session_round_trip():
    token = create_session(UserRole.engineer, "Alice Ngono", "alice", "ENAM")
    assert read_session(token) == SessionData(
        role=UserRole.engineer, name="Alice Ngono", username="alice", site="ENAM"
    )


@pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
def test_read_session_malformed_returns_none(token):
    assert read_session(token) is None


def test_read_session_tampered_returns_none():
    token = create_session(UserRole.engineer, "Alice", "alice", "ENAM")
    header, payload, signature = token.split(".")
    forged = jwt.encode(
        {"role": "admin", "name": "Alice", "username": "alice", "site": "ENAM"},
        "someone-elses-secret",
        algorithm=ALGORITHM,
    )
    assert read_session(forged) is None
    assert read_session(f"{header}.{forged.split('.')[1]}.{signature}") is None


def test_read_session_missing_field_returns_none():
    settings = get_settings()
    token = jwt.encode({"role": "engineer", "name": "Bob"}, settings.session_secret, algorithm=ALGORITHM)
    assert read_session(token) is None


def test_read_session_unknown_site_returns_none():
    token = create_session(UserRole.engineer, "Bob", "bob", "NOWHERE")
    assert read_session(token) is None


def test_read_session_expired_returns_none(monkeypatch):
    monkeypatch.setattr("stockroom.security.session_max_age", lambda: timedelta(seconds=-5))
    token = create_session(UserRole.engineer, "Bob", "bob", "ENAM")
    assert read_session(token) is None


def test_require_role():
    engineer = SessionData(role=UserRole.engineer, name="A", username="a", site="ENAM")
    with pytest.raises(Unauthorized):
        require_role(None, UserRole.engineer)
    with pytest.raises(Forbidden):
        require_role(engineer, UserRole.admin)
    assert require_role(engineer, UserRole.engineer, UserRole.admin) is engineer


def test_passwords_are_hashed():
    hashed = hash_password("s3cret")
    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
