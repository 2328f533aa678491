"""
Capability-based authorization.

Every route names the capability it needs; ``authorize`` is the single gate
deciding whether an actor holds it, optionally for a resource owned by a
given user. Capabilities that a role holds only for its own resources are
listed in ``OWNER_SCOPED``.
"""
import enum
import uuid
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from ..errors import Forbidden
from ..models.models import ROLE_MANAGER, ROLE_TEAM_LEADER


class Role(str, enum.Enum):
    MANAGER = ROLE_MANAGER
    TEAM_LEADER = ROLE_TEAM_LEADER


class Capability(str, enum.Enum):
    EMPLOYEE_READ = "employee:read"
    EMPLOYEE_MANAGE = "employee:manage"
    USER_MANAGE = "user:manage"
    LOG_READ = "log:read"
    LOG_CREATE = "log:create"
    LOG_EDIT = "log:edit"
    LOG_SUBMIT = "log:submit"
    LOG_ATTACH = "log:attach"
    LOG_APPROVE = "log:approve"
    LOG_DELETE = "log:delete"
    LOG_DELETE_APPROVED = "log:delete_approved"
    LOG_EXPORT = "log:export"


@dataclass(frozen=True)
class Actor:
    id: uuid.UUID
    role: Role
    username: str = ""

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.MANAGER: frozenset({
        Capability.EMPLOYEE_READ,
        Capability.EMPLOYEE_MANAGE,
        Capability.USER_MANAGE,
        Capability.LOG_READ,
        Capability.LOG_APPROVE,
        Capability.LOG_DELETE,
        Capability.LOG_DELETE_APPROVED,
        Capability.LOG_EXPORT,
    }),
    Role.TEAM_LEADER: frozenset({
        Capability.EMPLOYEE_READ,
        Capability.LOG_READ,
        Capability.LOG_CREATE,
        Capability.LOG_EDIT,
        Capability.LOG_SUBMIT,
        Capability.LOG_ATTACH,
        Capability.LOG_DELETE,
        Capability.LOG_EXPORT,
    }),
}

# Capabilities a role may only exercise on resources it owns
OWNER_SCOPED: Dict[Role, FrozenSet[Capability]] = {
    Role.MANAGER: frozenset(),
    Role.TEAM_LEADER: frozenset({
        Capability.LOG_READ,
        Capability.LOG_EDIT,
        Capability.LOG_SUBMIT,
        Capability.LOG_ATTACH,
        Capability.LOG_DELETE,
        Capability.LOG_EXPORT,
    }),
}


def has_capability(actor: Actor, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(actor.role, frozenset())


def authorize(actor: Actor, capability: Capability, owner_id: Optional[uuid.UUID] = None) -> Actor:
    """Raise ``Forbidden`` unless ``actor`` may exercise ``capability``.

    ``owner_id`` is the owner of the resource being acted on; it only matters
    for capabilities that are owner-scoped for the actor's role.
    """
    if not has_capability(actor, capability):
        raise Forbidden(f"{actor.role.value} is not allowed to perform {capability.value}")
    if owner_id is not None and capability in OWNER_SCOPED.get(actor.role, frozenset()):
        if str(owner_id) != str(actor.id):
            raise Forbidden("Not authorized to access a log owned by another team leader")
    return actor


def scoped_owner(actor: Actor, requested: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """Owner filter for list queries; team leaders only ever see their own logs."""
    if Capability.LOG_READ in OWNER_SCOPED.get(actor.role, frozenset()):
        return actor.id
    return requested
