import enum
from types import MappingProxyType

from models import RoleName


class Action(enum.Enum):
    MANAGE_SERVICES = "manage_services"
    EDIT_DRAFT = "edit_draft"
    CREATE_REQUEST = "create_request"
    FORM_REQUEST = "form_request"
    VIEW_OWN_REQUESTS = "view_own_requests"
    VIEW_ALL_REQUESTS = "view_all_requests"
    MODERATE_REQUEST = "moderate_request"
    DELETE_OWN_REQUEST = "delete_own_request"
    DELETE_ANY_REQUEST = "delete_any_request"
    EDIT_PROFILE = "edit_profile"


_CUSTOMER_ACTIONS = frozenset({
    Action.EDIT_DRAFT,
    Action.CREATE_REQUEST,
    Action.FORM_REQUEST,
    Action.VIEW_OWN_REQUESTS,
    Action.DELETE_OWN_REQUEST,
    Action.EDIT_PROFILE,
})

_MODERATOR_ACTIONS = _CUSTOMER_ACTIONS | {
    Action.MANAGE_SERVICES,
    Action.VIEW_ALL_REQUESTS,
    Action.MODERATE_REQUEST,
}

POLICY = MappingProxyType({
    RoleName.BUYER: _CUSTOMER_ACTIONS,
    RoleName.MANAGER: _MODERATOR_ACTIONS,
    RoleName.ADMIN: _MODERATOR_ACTIONS | {Action.DELETE_ANY_REQUEST},
})


def to_role(value):
    """Coerce a role claim to ``RoleName``; ``None`` when it is unknown."""
    if isinstance(value, RoleName):
        return value
    try:
        return RoleName(value)
    except ValueError:
        return None


def is_allowed(role, action: Action) -> bool:
    role = to_role(role)
    if role is None:
        return False
    return action in POLICY.get(role, frozenset())


def is_moderator(role) -> bool:
    return is_allowed(role, Action.MODERATE_REQUEST)
