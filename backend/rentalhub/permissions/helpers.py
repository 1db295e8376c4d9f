# Overview: Utility functions for role, resource and action validation.

from .catalog import Role, Resource, Action


def get_all_roles():
    """Get list of all role names."""
    return list(Role.ALL)


def validate_role(role):
    """Check if a role name is valid."""
    return role in Role.ALL


def validate_resource(resource):
    """Check if a resource tag is valid."""
    return resource in Resource.ALL


def validate_action(action):
    """Check if an action tag is valid."""
    return action in Action.ALL
