"""
Galaxy admin API integration.

This module implements the Galaxy repository interfaces on top of GalaxyClient,
mapping REST endpoints to domain types.
"""

import logging
from typing import Any, Callable, Dict, List, TypeVar

from training_manager.galaxy.base import (
    GalaxyAPIError,
    GalaxyRepository,
    GroupRoleRepository,
    GroupUserRepository,
)
from training_manager.galaxy.client import GalaxyClient
from training_manager.types import (
    Group,
    GroupCreatePayload,
    GroupID,
    GroupName,
    GroupUpdatePayload,
    Role,
    RoleDefinitionModel,
    RoleID,
    RoleName,
    User,
    UserID,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _decode(kind: str, data: Any, factory: Callable[[Dict[str, Any]], T]) -> T:
    if not isinstance(data, dict):
        raise GalaxyAPIError(f"Malformed {kind} in Galaxy response: expected an object, got {type(data).__name__}")
    try:
        return factory(data)
    except (KeyError, TypeError, ValueError) as e:
        raise GalaxyAPIError(f"Malformed {kind} in Galaxy response: {e!r}")


def _decode_list(kind: str, data: Any, factory: Callable[[Dict[str, Any]], T]) -> List[T]:
    if not isinstance(data, list):
        raise GalaxyAPIError(f"Malformed {kind} list in Galaxy response: expected an array")
    return [_decode(kind, item, factory) for item in data]


class GalaxyAPI(GalaxyRepository, GroupRoleRepository, GroupUserRepository):
    """
    Galaxy admin API client.

    Users, roles and groups are read from and written to /api/users, /api/roles
    and /api/groups, authenticated with an admin API key.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize Galaxy API client.

        Args:
            config: The 'galaxy' settings section
        """
        self.client = GalaxyClient(config)
        logger.info(f"Initialized Galaxy API client for {self.client.base_url}")

    def get_users(self) -> List[User]:
        users = _decode_list('user', self.client.get('/api/users'), User.from_dict)
        logger.debug(f"Retrieved {len(users)} users from Galaxy")
        return users

    def get_roles(self) -> List[Role]:
        roles = _decode_list('role', self.client.get('/api/roles'), Role.from_dict)
        logger.debug(f"Retrieved {len(roles)} roles from Galaxy")
        return roles

    def create_role(self, name: str, description: str) -> Role:
        body = RoleDefinitionModel(name=RoleName.parse(name), description=description)
        return _decode('role', self.client.post('/api/roles', body.to_dict()), Role.from_dict)

    def get_groups(self) -> List[Group]:
        groups = _decode_list('group', self.client.get('/api/groups'), Group.from_dict)
        logger.debug(f"Retrieved {len(groups)} groups from Galaxy")
        return groups

    def create_group(self, name: str) -> Group:
        body = GroupCreatePayload(name=GroupName.parse(name))
        data = self.client.post('/api/groups', body.to_dict())
        # Accept a one-element list as well as a bare object
        if isinstance(data, list) and len(data) == 1:
            data = data[0]
        return _decode('group', data, Group.from_dict)

    def update_group(self, group_id: GroupID, payload: GroupUpdatePayload) -> Group:
        data = self.client.put(f'/api/groups/{group_id}', payload.to_dict())
        return _decode('group', data, Group.from_dict)

    def get_group_users(self, group_id: GroupID) -> List[User]:
        return _decode_list('user', self.client.get(f'/api/groups/{group_id}/users'), User.from_dict)

    def add_user_to_group(self, user_id: UserID, group_id: GroupID) -> None:
        self.client.put(f'/api/groups/{group_id}/user/{user_id}')

    def get_group_roles(self, group_id: GroupID) -> List[Role]:
        return _decode_list('role', self.client.get(f'/api/groups/{group_id}/roles'), Role.from_dict)

    def add_role_to_group(self, role_id: RoleID, group_id: GroupID) -> None:
        self.client.put(f'/api/groups/{group_id}/roles/{role_id}')
