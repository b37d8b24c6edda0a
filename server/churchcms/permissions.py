"""Roles and dashboard module permissions."""

from __future__ import annotations

from typing import Final, Iterable

USER_ROLES: Final = ("Admin", "Pastor", "Finance", "Staff")
DEFAULT_ROLE: Final = "Staff"

MODULE_PERMISSIONS: Final = (
    "dashboard",
    "members",
    "programs",
    "attendance",
    "messaging",
    "finance",
    "audit",
    "settings",
    "users",
)

_ROLE_MODULES: Final = {
    "Admin": list(MODULE_PERMISSIONS),
    "Pastor": ["dashboard", "members", "programs", "attendance", "messaging", "audit"],
    "Finance": ["dashboard", "finance", "audit", "members"],
    "Staff": ["dashboard", "members", "programs", "attendance", "messaging"],
}


def default_modules_for_role(role: str | None) -> list[str]:
    return list(_ROLE_MODULES.get(role or DEFAULT_ROLE, _ROLE_MODULES[DEFAULT_ROLE]))


def normalize_modules(modules: Iterable[str] | None, role: str | None) -> list[str]:
    """Validate a requested module list, falling back to the role defaults.

    Raises ``ValueError`` for an empty list or an unknown module name.
    """

    if modules is None:
        return default_modules_for_role(role if role in USER_ROLES else DEFAULT_ROLE)

    cleaned = [str(module).strip() for module in modules]
    if not cleaned:
        raise ValueError("modules must be a non-empty array")
    for module in cleaned:
        if module not in MODULE_PERMISSIONS:
            raise ValueError(f"Invalid module permission: {module}")
    return list(dict.fromkeys(cleaned))


def has_module(role: str | None, modules: Iterable[str] | None, module: str) -> bool:
    if role == "Admin":
        return True
    return module in set(modules or [])
