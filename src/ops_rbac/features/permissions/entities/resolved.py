"""Resolved access entities.

These are the outputs of permission resolution: effective roles of a user and
the permissions they grant, annotated with parsed conditions and site scope.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional

from ....config.constants import WILDCARD


def _matches(granted: str, requested: str) -> bool:
    return granted == WILDCARD or granted == requested


@dataclass(frozen=True)
class UserRole:
    """Effective role held by a user through one assignment."""

    role_id: str
    role_code: str
    role_name: str
    site_code: Optional[str] = None
    assignment_id: Optional[str] = None
    expires_at: Optional[str] = None


@dataclass(frozen=True)
class UserPermission:
    """Effective permission of a user.

    ``conditions`` is opaque to resolution and evaluated by the consuming
    module; it is held as a read-only mapping. ``is_global`` and
    ``site_codes`` record the scope of the assignments the permission was
    obtained through.
    """

    module_code: str
    action: str
    resource: str
    conditions: Mapping[str, Any] = field(default_factory=dict, hash=False)
    is_global: bool = True
    site_codes: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "conditions", MappingProxyType(dict(self.conditions)))

    def grants_module(self, module_code: str) -> bool:
        return _matches(self.module_code, module_code)

    def matches(self, module_code: str, action: str, resource: Optional[str] = None) -> bool:
        """Check module, action and (when given) resource, each independently wildcard-aware."""
        if not _matches(self.module_code, module_code):
            return False
        if not _matches(self.action, action):
            return False
        if resource is not None and not _matches(self.resource, resource):
            return False
        return True

    def applies_to_site(self, site_code: Optional[str]) -> bool:
        """True if granted for all sites or for ``site_code``; None means any site."""
        if site_code is None or self.is_global:
            return True
        return site_code in self.site_codes

    @property
    def is_module_wildcard(self) -> bool:
        return self.module_code == WILDCARD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_code": self.module_code,
            "action": self.action,
            "resource": self.resource,
            "conditions": dict(self.conditions),
            "is_global": self.is_global,
            "site_codes": sorted(self.site_codes),
        }
