# Overview: Immutable permission matrix with closed-world lookups.

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Iterable

from .definitions import DEFAULT_PERMISSIONS


class PermissionMatrix:
    """
    Static mapping of role -> resource -> allowed actions.

    Built once and never mutated. Unknown roles, resources and actions are
    denied, never errors. Pass a different mapping to substitute custom
    role sets (tests, alternate deployments).
    """

    def __init__(self, entries: Mapping[str, Mapping[str, Iterable[str]]]):
        self._entries = MappingProxyType({
            role: MappingProxyType({
                resource: frozenset(actions)
                for resource, actions in resources.items()
            })
            for role, resources in entries.items()
        })

    def has_permission(self, role: str | None, resource: str, action: str) -> bool:
        return action in self.get_allowed_actions(role, resource)

    def get_allowed_actions(self, role: str | None, resource: str) -> frozenset[str]:
        resources = self._entries.get(role)
        if resources is None:
            return frozenset()
        return resources.get(resource, frozenset())

    def get_permissions_for_role(self, role: str | None) -> dict[str, frozenset[str]]:
        return dict(self._entries.get(role, {}))

    def roles(self) -> list[str]:
        return list(self._entries.keys())

    def to_dict(self) -> dict:
        return {
            role: {resource: sorted(actions) for resource, actions in resources.items()}
            for role, resources in self._entries.items()
        }


DEFAULT_MATRIX = PermissionMatrix(DEFAULT_PERMISSIONS)
