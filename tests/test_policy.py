import uuid

import pytest

from worklog.auth.policy import Actor, Capability, Role, authorize, has_capability, scoped_owner
from worklog.errors import Forbidden


MANAGER = Actor(id=uuid.uuid4(), role=Role.MANAGER)
LEADER = Actor(id=uuid.uuid4(), role=Role.TEAM_LEADER)


def test_manager_capabilities():
    assert has_capability(MANAGER, Capability.LOG_APPROVE)
    assert has_capability(MANAGER, Capability.EMPLOYEE_MANAGE)
    assert has_capability(MANAGER, Capability.LOG_DELETE_APPROVED)
    assert not has_capability(MANAGER, Capability.LOG_CREATE)
    assert not has_capability(MANAGER, Capability.LOG_SUBMIT)


def test_team_leader_capabilities():
    assert has_capability(LEADER, Capability.LOG_CREATE)
    assert has_capability(LEADER, Capability.EMPLOYEE_READ)
    assert not has_capability(LEADER, Capability.LOG_APPROVE)
    assert not has_capability(LEADER, Capability.EMPLOYEE_MANAGE)
    assert not has_capability(LEADER, Capability.LOG_DELETE_APPROVED)


def test_authorize_rejects_missing_capability():
    with pytest.raises(Forbidden):
        authorize(LEADER, Capability.LOG_APPROVE)


def test_authorize_scopes_team_leader_to_own_logs():
    assert authorize(LEADER, Capability.LOG_EDIT, owner_id=LEADER.id) is LEADER
    with pytest.raises(Forbidden):
        authorize(LEADER, Capability.LOG_READ, owner_id=uuid.uuid4())


def test_manager_is_not_owner_scoped():
    assert authorize(MANAGER, Capability.LOG_READ, owner_id=uuid.uuid4()) is MANAGER
    assert authorize(MANAGER, Capability.LOG_DELETE, owner_id=uuid.uuid4()) is MANAGER


def test_scoped_owner_forces_team_leader_filter():
    assert scoped_owner(LEADER, uuid.uuid4()) == LEADER.id
    assert scoped_owner(LEADER, None) == LEADER.id
    requested = uuid.uuid4()
    assert scoped_owner(MANAGER, requested) == requested
    assert scoped_owner(MANAGER, None) is None
