import pytest

from models import RoleName
from utils.permissions import POLICY, Action, is_allowed, is_moderator, to_role


@pytest.mark.parametrize("action", [
    Action.EDIT_DRAFT,
    Action.CREATE_REQUEST,
    Action.FORM_REQUEST,
    Action.VIEW_OWN_REQUESTS,
])
def test_every_role_can_order(action):
    for role in RoleName:
        assert is_allowed(role, action)


@pytest.mark.parametrize("action", [
    Action.MANAGE_SERVICES,
    Action.VIEW_ALL_REQUESTS,
    Action.MODERATE_REQUEST,
    Action.DELETE_ANY_REQUEST,
])
def test_buyer_cannot_moderate(action):
    assert not is_allowed(RoleName.BUYER, action)


def test_only_admin_deletes_any_request():
    assert is_allowed(RoleName.ADMIN, Action.DELETE_ANY_REQUEST)
    assert not is_allowed(RoleName.MANAGER, Action.DELETE_ANY_REQUEST)


def test_admin_permissions_cover_manager():
    assert POLICY[RoleName.MANAGER] <= POLICY[RoleName.ADMIN]


def test_role_strings_are_accepted():
    assert to_role("manager") is RoleName.MANAGER
    assert is_allowed("admin", Action.MODERATE_REQUEST)
    assert is_moderator("manager")
    assert not is_moderator("buyer")


def test_unknown_role_is_denied_everything():
    assert to_role("guest") is None
    assert not any(is_allowed("guest", action) for action in Action)
    assert not is_allowed(None, Action.VIEW_OWN_REQUESTS)
