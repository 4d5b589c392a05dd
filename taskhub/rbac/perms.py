from taskhub.models.enums import Role

ALL_ROLES = frozenset(Role)
MANAGERS = frozenset({Role.OWNER, Role.ADMIN})

PERMS: dict[str, frozenset[Role]] = {
    "org:view": ALL_ROLES,
    "members:view": ALL_ROLES,
    "members:add": MANAGERS,
    "members:update_role": MANAGERS,
    "invites:create": MANAGERS,

    "teams:create": MANAGERS,
    "teams:read": ALL_ROLES,

    "lists:create": MANAGERS,
    "lists:read": ALL_ROLES,

    "tasks:create": ALL_ROLES,
    "tasks:read": ALL_ROLES,
    "tasks:update": ALL_ROLES,

    "messages:create": ALL_ROLES,
    "messages:read": ALL_ROLES,
}

# which roles a caller may hand out; OWNER is never assignable
ASSIGNABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.OWNER: frozenset({Role.ADMIN, Role.MEMBER}),
    Role.ADMIN: frozenset({Role.MEMBER}),
    Role.MEMBER: frozenset(),
}

def allowed_roles(action: str) -> frozenset[Role]:
    allowed = PERMS.get(action)
    if allowed is None:
        raise RuntimeError(f"unknown permission action: {action}")
    return allowed

def can_assign(actor: Role, target: Role) -> bool:
    return target in ASSIGNABLE_ROLES.get(actor, frozenset())
