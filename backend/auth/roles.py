"""Role normalization and the role-to-permission table."""

ADMINISTRATOR = 'ADMINISTRATOR'
VETERINARIAN = 'VETERINARIAN'
SECRETARY = 'SECRETARY'
PET_GROOMER = 'PET_GROOMER'
CUSTOMER = 'CUSTOMER'

ROLE_ALIASES = {
    'ADMIN': ADMINISTRATOR,
    'PETGROOMER': PET_GROOMER,
}

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ADMINISTRATOR: frozenset({
        'read:appointments',
        'write:appointments',
        'read:pets',
        'write:pets',
        'read:users',
        'admin:access',
    }),
    VETERINARIAN: frozenset({'read:appointments', 'write:appointments', 'read:pets', 'write:pets'}),
    SECRETARY: frozenset({'read:appointments', 'write:appointments', 'read:pets', 'write:pets'}),
    PET_GROOMER: frozenset({'read:appointments', 'write:appointments', 'read:pets'}),
    CUSTOMER: frozenset({'read:appointments', 'write:appointments', 'read:pets', 'write:pets'}),
}

# Roles allowed to book or edit appointments for pets they do not own.
STAFF_BOOKING_ROLES = frozenset({ADMINISTRATOR, VETERINARIAN, SECRETARY})


def normalize_role(role: str | None) -> str:
    upper_role = (role or '').strip().upper()
    upper_role = ROLE_ALIASES.get(upper_role, upper_role)

    if upper_role in ROLE_PERMISSIONS:
        return upper_role

    return CUSTOMER


def is_admin(role: str | None) -> bool:
    return normalize_role(role) == ADMINISTRATOR


def has_permission(role: str | None, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS[normalize_role(role)]


def default_redirect_path(role: str | None) -> str:
    del role
    return '/dashboard'
