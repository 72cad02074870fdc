from enum import Enum


class Role(str, Enum):
    GUEST = "guest"
    MEMBER = "member"
    OFFICER = "officer"
    SECRETARY = "secretary"
    TREASURER = "treasurer"
    VICE_PRESIDENT = "vice_president"
    PRESIDENT = "president"
    ADMIN = "admin"


# Higher rank means more privileges
ROLE_RANK: dict[Role, int] = {
    Role.GUEST: 0,
    Role.MEMBER: 1,
    Role.OFFICER: 2,
    Role.SECRETARY: 3,
    Role.TREASURER: 4,
    Role.VICE_PRESIDENT: 5,
    Role.PRESIDENT: 6,
    Role.ADMIN: 7,
}

ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.GUEST: "訪客",
    Role.MEMBER: "會員",
    Role.OFFICER: "幹部",
    Role.SECRETARY: "秘書",
    Role.TREASURER: "財務",
    Role.VICE_PRESIDENT: "副會長",
    Role.PRESIDENT: "會長",
    Role.ADMIN: "系統管理員",
}

ROLE_GROUPS: dict[str, frozenset[Role]] = {
    "officers": frozenset(
        {Role.OFFICER, Role.SECRETARY, Role.TREASURER, Role.VICE_PRESIDENT, Role.PRESIDENT, Role.ADMIN}
    ),
    "leadership": frozenset({Role.VICE_PRESIDENT, Role.PRESIDENT, Role.ADMIN}),
    "financial": frozenset({Role.TREASURER, Role.PRESIDENT, Role.ADMIN}),
    "all": frozenset(Role),
}


def parse_role(value: "Role | str | None") -> Role:
    """Unknown or empty roles degrade to ``guest``."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return Role.GUEST


def rank_of(value: "Role | str | None") -> int:
    return ROLE_RANK[parse_role(value)]


def has_minimum_role(user_role: "Role | str | None", required: Role) -> bool:
    if parse_role(user_role) is Role.ADMIN:
        return True
    return rank_of(user_role) >= ROLE_RANK[required]


def is_in_role_group(user_role: "Role | str | None", group: str) -> bool:
    return parse_role(user_role) in ROLE_GROUPS[group]


def subordinate_roles(role: Role) -> list[Role]:
    return [r for r in Role if ROLE_RANK[r] < ROLE_RANK[role]]


def superior_roles(role: Role) -> list[Role]:
    return [r for r in Role if ROLE_RANK[r] > ROLE_RANK[role]]


def display_name(role: "Role | str | None") -> str:
    return ROLE_DISPLAY_NAMES[parse_role(role)]
