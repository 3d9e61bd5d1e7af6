"""
In-memory Galaxy backend.

Implements every repository interface against plain dictionaries. Used by the
test suite, by validate_installation.py, and anywhere a reconciliation run
needs to be exercised without a Galaxy server.
"""

import itertools
import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set

from training_manager.galaxy.base import (
    GalaxyNotFoundError,
    GalaxyRepository,
    GroupRoleRepository,
    GroupUserRepository,
)
from training_manager.types import (
    Group,
    GroupID,
    GroupUpdatePayload,
    Role,
    RoleID,
    User,
    UserID,
)

logger = logging.getLogger(__name__)


class InMemoryGalaxy(GalaxyRepository, GroupRoleRepository, GroupUserRepository):
    """
    Thread-safe in-memory Galaxy.

    New roles and groups get sequential string ids ("0", "1", ...). Every
    mutating call is recorded in `calls` as (method, args) so callers can
    assert on what a run did.
    """

    def __init__(self, users: Optional[Iterable[User]] = None,
                 roles: Optional[Iterable[Role]] = None,
                 groups: Optional[Iterable[Group]] = None):
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self.users: Dict[UserID, User] = {user.id: user for user in users or []}
        self.roles: Dict[RoleID, Role] = {role.id: role for role in roles or []}
        self.groups: Dict[GroupID, Group] = {group.id: group for group in groups or []}
        self.group_users: Dict[GroupID, Set[UserID]] = {group_id: set() for group_id in self.groups}
        self.group_roles: Dict[GroupID, Set[RoleID]] = {group_id: set() for group_id in self.groups}
        self.calls = []

    def _next_id(self) -> str:
        while True:
            candidate = str(next(self._ids))
            if GroupID(candidate) not in self.groups and RoleID(candidate) not in self.roles:
                return candidate

    def _require_group(self, group_id: GroupID) -> Group:
        group = self.groups.get(group_id)
        if group is None:
            raise GalaxyNotFoundError(f"group {group_id} does not exist", status_code=404)
        return group

    def get_users(self) -> List[User]:
        with self._lock:
            return list(self.users.values())

    def get_roles(self) -> List[Role]:
        with self._lock:
            return list(self.roles.values())

    def create_role(self, name: str, description: str) -> Role:
        with self._lock:
            role = Role.new(self._next_id(), name, description)
            self.roles[role.id] = role
            self.calls.append(('create_role', (name, description)))
            return role

    def get_groups(self) -> List[Group]:
        with self._lock:
            return list(self.groups.values())

    def create_group(self, name: str) -> Group:
        with self._lock:
            group = Group.new(self._next_id(), name)
            self.groups[group.id] = group
            self.group_users[group.id] = set()
            self.group_roles[group.id] = set()
            self.calls.append(('create_group', (name,)))
            return group

    def update_group(self, group_id: GroupID, payload: GroupUpdatePayload) -> Group:
        with self._lock:
            group = self._require_group(group_id)
            if payload.name is not None:
                group = replace(group, name=payload.name)
                self.groups[group_id] = group
            if payload.user_ids is not None:
                self.group_users[group_id] = set(payload.user_ids)
            if payload.role_ids is not None:
                self.group_roles[group_id] = set(payload.role_ids)
            self.calls.append(('update_group', (group_id, payload)))
            return group

    def get_group_users(self, group_id: GroupID) -> List[User]:
        with self._lock:
            return [self.users[user_id] for user_id in self.group_users.get(group_id, set())
                    if user_id in self.users]

    def add_user_to_group(self, user_id: UserID, group_id: GroupID) -> None:
        with self._lock:
            if user_id not in self.users:
                raise GalaxyNotFoundError(f"user {user_id} does not exist", status_code=404)
            self._require_group(group_id)
            self.group_users[group_id].add(user_id)
            self.calls.append(('add_user_to_group', (user_id, group_id)))

    def get_group_roles(self, group_id: GroupID) -> List[Role]:
        with self._lock:
            return [self.roles[role_id] for role_id in self.group_roles.get(group_id, set())
                    if role_id in self.roles]

    def add_role_to_group(self, role_id: RoleID, group_id: GroupID) -> None:
        with self._lock:
            if role_id not in self.roles:
                raise GalaxyNotFoundError(f"role {role_id} does not exist", status_code=404)
            self._require_group(group_id)
            self.group_roles[group_id].add(role_id)
            self.calls.append(('add_role_to_group', (role_id, group_id)))

    def calls_to(self, method: str) -> list:
        """Arguments of every recorded call to `method`, in call order."""
        with self._lock:
            return [args for name, args in self.calls if name == method]
