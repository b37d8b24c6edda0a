from __future__ import annotations

import time

import pytest

from churchcms.auth.security import create_access_token, decode_access_token, hash_password, verify_password
from churchcms.models.user import User
from churchcms.permissions import MODULE_PERMISSIONS, default_modules_for_role, has_module, normalize_modules
from churchcms.services.user_accounts import seed_admin


def test_role_defaults():
    assert default_modules_for_role("Admin") == list(MODULE_PERMISSIONS)
    assert "finance" in default_modules_for_role("Finance")
    assert "finance" not in default_modules_for_role("Pastor")
    assert default_modules_for_role(None) == default_modules_for_role("Staff")
    assert default_modules_for_role("Bishop") == default_modules_for_role("Staff")


def test_normalize_modules():
    assert normalize_modules(None, "Finance") == default_modules_for_role("Finance")
    assert normalize_modules([" members ", "members", "finance"], "Staff") == ["members", "finance"]
    with pytest.raises(ValueError, match="non-empty"):
        normalize_modules([], "Staff")
    with pytest.raises(ValueError, match="Invalid module permission: payroll"):
        normalize_modules(["payroll"], "Staff")


def test_admin_has_every_module():
    assert has_module("Admin", [], "finance")
    assert has_module("Staff", ["members"], "members")
    assert not has_module("Staff", ["members"], "finance")
    assert not has_module("Pastor", None, "members")


def test_password_hashing():
    hashed = hash_password("Shepherd1")
    assert hashed != "Shepherd1"
    assert verify_password("Shepherd1", hashed)
    assert not verify_password("shepherd1", hashed)
    assert not verify_password("Shepherd1", "not-a-bcrypt-hash")


def test_access_token_claims():
    token = create_access_token(subject="42", role="Finance")
    payload = decode_access_token(token)
    assert payload["sub"] == "42"
    assert payload["role"] == "Finance"
    assert payload["exp"] > time.time()


def test_seed_admin_creates_and_repairs(db_session):
    created = seed_admin(db_session)
    assert created.role == "Admin"
    assert created.modules == list(MODULE_PERMISSIONS)

    created.modules = []
    db_session.commit()
    repaired = seed_admin(db_session)
    assert repaired.id == created.id
    assert repaired.modules == list(MODULE_PERMISSIONS)
    assert db_session.query(User).count() == 1
