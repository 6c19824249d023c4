# siteapi/auth/scopes.py
"""
Permission and site-scope types attached to an authenticated API key.

Permissions are a closed enum; anything the store returns that isn't a known
name is dropped, so a typo or a corrupted row can only ever grant less.
Site scope is either Unrestricted or RestrictedTo(ids); the NULL / [] column
values both mean Unrestricted and nothing downstream looks at the raw list.
"""
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Union

log = logging.getLogger("siteapi.auth")


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    ADMIN = "admin"


def _split_names(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        s = value.strip()
        if s.startswith("[") and s.endswith("]"):
            try:
                parsed = json.loads(s)
                if isinstance(parsed, list):
                    return [str(p) for p in parsed]
            except json.JSONDecodeError:
                pass
        return [p for p in re.split(r"[\s,]+", s) if p]
    try:
        return [str(p) for p in value]
    except TypeError:
        return []


@dataclass(frozen=True)
class PermissionSet:
    permissions: FrozenSet[Permission] = frozenset()

    @classmethod
    def parse(cls, value) -> "PermissionSet":
        """Accept a list, a JSON array string or a comma separated string"""
        granted = set()
        for name in _split_names(value):
            try:
                granted.add(Permission(name.strip().lower()))
            except ValueError:
                log.warning("AUTH: ignoring unknown permission %r", name)
        return cls(frozenset(granted))

    @classmethod
    def of(cls, *perms: Permission) -> "PermissionSet":
        return cls(frozenset(perms))

    def allows(self, permission: Permission) -> bool:
        return permission in self.permissions or Permission.ADMIN in self.permissions

    def names(self) -> list:
        return sorted(p.value for p in self.permissions)


@dataclass(frozen=True)
class Unrestricted:
    """Key may reach every site of its organization"""

    def allows(self, site_id: str) -> bool:
        return True

    def site_ids(self):
        return None


@dataclass(frozen=True)
class RestrictedTo:
    """Key may only reach the listed sites"""
    ids: FrozenSet[str]

    def __post_init__(self):
        if not self.ids:
            raise ValueError("RestrictedTo needs at least one site id")

    def allows(self, site_id: str) -> bool:
        return site_id in self.ids

    def site_ids(self):
        return sorted(self.ids)


SiteScope = Union[Unrestricted, RestrictedTo]


def site_scope_from_allowed_sites(allowed_sites: Union[Iterable[str], None]) -> SiteScope:
    """Map the stored allow-list column onto a SiteScope"""
    ids = frozenset(s for s in _split_names(allowed_sites) if s)
    if not ids:
        return Unrestricted()
    return RestrictedTo(ids)
