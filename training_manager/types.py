"""
Domain types for Galaxy users, roles and groups.

Identifiers are small immutable value types wrapping the raw string returned by
the Galaxy API. Each identifier domain gets its own class so a UserID can never
compare equal to a RoleID holding the same string.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class InvalidEmailError(ValueError):
    """Raised when a string is not a valid email address."""
    pass


@dataclass(frozen=True)
class _Identifier:
    value: str

    @classmethod
    def parse(cls, raw: str):
        """Wrap a raw string. Never fails for plain identifiers."""
        return cls(str(raw))

    def __str__(self) -> str:
        return self.value


class UserID(_Identifier):
    pass


class RoleID(_Identifier):
    pass


class GroupID(_Identifier):
    pass


class UserName(_Identifier):
    pass


class RoleName(_Identifier):
    pass


class GroupName(_Identifier):
    pass


@dataclass(frozen=True)
class Email(_Identifier):
    """An email address: exactly one '@' separator."""

    def __post_init__(self):
        if not isinstance(self.value, str) or len(self.value.split('@')) != 2:
            raise InvalidEmailError(f"Invalid email address: {self.value!r}")

    @classmethod
    def parse(cls, raw: str) -> "Email":
        if not isinstance(raw, str):
            raise InvalidEmailError(f"Invalid email address: {raw!r}")
        return cls(raw)

    @classmethod
    def from_remote(cls, raw: Any) -> "Email":
        """Wrap an address as stored in Galaxy. Only a missing address is rejected."""
        if raw is None:
            raise InvalidEmailError("Missing email address")
        email = cls.__new__(cls)
        object.__setattr__(email, 'value', str(raw))
        return email


def _optional(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return None if value is None else str(value)


@dataclass(frozen=True)
class User:
    id: UserID
    email: Email
    username: Optional[UserName] = None

    @classmethod
    def new(cls, id: str, email: str) -> "User":
        return cls(id=UserID.parse(id), email=Email.parse(email))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        username = data.get('username')
        return cls(
            id=UserID.parse(data['id']),
            email=Email.from_remote(data['email']),
            username=UserName.parse(username) if username is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id),
            'email': str(self.email),
            'username': str(self.username) if self.username is not None else None,
        }


@dataclass(frozen=True)
class Role:
    id: RoleID
    name: RoleName
    description: Optional[str] = None
    url: Optional[str] = None
    model_class: Optional[str] = None
    type: Optional[str] = None

    @classmethod
    def new(cls, id: str, name: str, description: str = "") -> "Role":
        return cls(id=RoleID.parse(id), name=RoleName.parse(name), description=description)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Role":
        return cls(
            id=RoleID.parse(data['id']),
            name=RoleName.parse(data['name']),
            description=_optional(data, 'description'),
            url=_optional(data, 'url'),
            model_class=_optional(data, 'model_class'),
            type=_optional(data, 'type'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id),
            'name': str(self.name),
            'description': self.description,
            'url': self.url,
            'model_class': self.model_class,
            'type': self.type,
        }


@dataclass(frozen=True)
class Group:
    id: GroupID
    name: GroupName
    model_class: Optional[str] = None
    url: Optional[str] = None
    roles_url: Optional[str] = None
    users_url: Optional[str] = None

    @classmethod
    def new(cls, id: str, name: str) -> "Group":
        return cls(id=GroupID.parse(id), name=GroupName.parse(name))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            id=GroupID.parse(data['id']),
            name=GroupName.parse(data['name']),
            model_class=_optional(data, 'model_class'),
            url=_optional(data, 'url'),
            roles_url=_optional(data, 'roles_url'),
            users_url=_optional(data, 'users_url'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id),
            'name': str(self.name),
            'model_class': self.model_class,
            'url': self.url,
            'roles_url': self.roles_url,
            'users_url': self.users_url,
        }


def _ids(values: Optional[List[Any]]) -> Optional[List[str]]:
    return None if values is None else [str(value) for value in values]


def _drop_unset(body: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in body.items() if value is not None}


@dataclass(frozen=True)
class RoleDefinitionModel:
    """Request body for POST /api/roles."""
    name: RoleName
    description: str = ""
    user_ids: Optional[List[UserID]] = None
    group_ids: Optional[List[GroupID]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_unset({
            'name': str(self.name),
            'description': self.description,
            'user_ids': _ids(self.user_ids),
            'group_ids': _ids(self.group_ids),
        })


@dataclass(frozen=True)
class GroupCreatePayload:
    """Request body for POST /api/groups."""
    name: GroupName
    user_ids: Optional[List[UserID]] = None
    role_ids: Optional[List[RoleID]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_unset({
            'name': str(self.name),
            'user_ids': _ids(self.user_ids),
            'role_ids': _ids(self.role_ids),
        })


@dataclass(frozen=True)
class GroupUpdatePayload:
    """
    Request body for PUT /api/groups/{id}.

    Every field that is set replaces the corresponding attribute of the remote
    group entirely; unset fields are left out of the request body and untouched.
    """
    name: Optional[GroupName] = None
    user_ids: Optional[List[UserID]] = None
    role_ids: Optional[List[RoleID]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_unset({
            'name': str(self.name) if self.name is not None else None,
            'user_ids': _ids(self.user_ids),
            'role_ids': _ids(self.role_ids),
        })
