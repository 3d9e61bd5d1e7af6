"""Galaxy repository interfaces and their HTTP and in-memory implementations."""

from training_manager.galaxy.base import (
    GalaxyAPIError,
    GalaxyAuthenticationError,
    GalaxyConnectionError,
    GalaxyNotFoundError,
    GalaxyRepository,
    GroupRepository,
    GroupRoleRepository,
    GroupUserRepository,
    RoleRepository,
    UserRepository,
)
from training_manager.galaxy.api import GalaxyAPI
from training_manager.galaxy.memory import InMemoryGalaxy


def init_galaxy(config) -> GalaxyAPI:
    """Create the HTTP Galaxy backend from the 'galaxy' settings section."""
    return GalaxyAPI(config)


__all__ = [
    'GalaxyAPI',
    'GalaxyAPIError',
    'GalaxyAuthenticationError',
    'GalaxyConnectionError',
    'GalaxyNotFoundError',
    'GalaxyRepository',
    'GroupRepository',
    'GroupRoleRepository',
    'GroupUserRepository',
    'InMemoryGalaxy',
    'RoleRepository',
    'UserRepository',
    'init_galaxy',
]
