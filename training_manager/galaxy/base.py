"""
Galaxy repository interfaces and common errors.

This module defines the capability interfaces the reconciliation engine consumes.
Each entity family gets its own small abstract base class; a full backend
implements all of them through GalaxyRepository. Concrete implementations are
the HTTP adapter (training_manager.galaxy.api) and the in-memory double
(training_manager.galaxy.memory).

Every method raises GalaxyAPIError (or a subclass) on failure. Nothing is
retried at this layer.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from training_manager.types import Group, GroupID, GroupUpdatePayload, Role, RoleID, User, UserID


class GalaxyAPIError(Exception):
    """Base exception for Galaxy API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GalaxyConnectionError(GalaxyAPIError):
    """Raised when the Galaxy server cannot be reached."""
    pass


class GalaxyAuthenticationError(GalaxyAPIError):
    """Raised when Galaxy rejects the API key."""
    pass


class GalaxyNotFoundError(GalaxyAPIError):
    """Raised when a referenced user, role or group does not exist."""
    pass


class UserRepository(ABC):

    @abstractmethod
    def get_users(self) -> List[User]:
        """Return every user known to Galaxy."""
        pass


class RoleRepository(ABC):

    @abstractmethod
    def get_roles(self) -> List[Role]:
        """Return every role known to Galaxy."""
        pass

    @abstractmethod
    def create_role(self, name: str, description: str) -> Role:
        """
        Create a role with no users or groups attached.

        Args:
            name: Role name
            description: Free-form description

        Returns:
            The created role as reported by Galaxy
        """
        pass


class GroupRepository(ABC):

    @abstractmethod
    def get_groups(self) -> List[Group]:
        """Return every group known to Galaxy."""
        pass

    @abstractmethod
    def create_group(self, name: str) -> Group:
        """Create an empty group and return it."""
        pass

    @abstractmethod
    def update_group(self, group_id: GroupID, payload: GroupUpdatePayload) -> Group:
        """
        Update a group.

        Each field set on the payload replaces the group's attribute entirely
        (membership and role lists are not merged).

        Args:
            group_id: Target group
            payload: Replacement values

        Returns:
            The updated group
        """
        pass


class GroupRoleRepository(ABC):
    """Incremental role assignment, for callers that do not want full replacement."""

    @abstractmethod
    def get_group_roles(self, group_id: GroupID) -> List[Role]:
        pass

    @abstractmethod
    def add_role_to_group(self, role_id: RoleID, group_id: GroupID) -> None:
        pass


class GroupUserRepository(ABC):
    """Incremental membership, for callers that do not want full replacement."""

    @abstractmethod
    def get_group_users(self, group_id: GroupID) -> List[User]:
        pass

    @abstractmethod
    def add_user_to_group(self, user_id: UserID, group_id: GroupID) -> None:
        pass


class GalaxyRepository(GroupRepository, RoleRepository, UserRepository):
    """Everything the reconciliation engine needs from a Galaxy backend."""
    pass
