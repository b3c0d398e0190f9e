from app.models.user import UserRole


# Higher value = more authority
ROLE_LEVELS = {
    UserRole.USER.value: 1,
    UserRole.MANAGER.value: 2,
    UserRole.ADMIN.value: 3,
}

# Roles allowed to manage reference data and export reports
STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER)


def get_level_value(role: str) -> int:
    """Convert a role name to its level. Unknown roles rank below USER."""
    return ROLE_LEVELS.get(str(getattr(role, "value", role)), 0)


def has_role(role: str, *allowed: UserRole) -> bool:
    """True when ``role`` is one of ``allowed``."""
    value = str(getattr(role, "value", role))
    return any(value == r.value for r in allowed)


def has_min_role(role: str, minimum: UserRole) -> bool:
    """True when ``role`` ranks at or above ``minimum`` in the hierarchy."""
    return get_level_value(role) >= get_level_value(minimum)
