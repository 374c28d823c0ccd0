"""
Group management for AIX with lsgroup, mkgroup, chgroup and rmgroup.
"""

from typing import Any, List

from mappings import MappingRegistry
from provider import ProviderDefinition


GROUP_COMMANDS = {
    "list": "/usr/sbin/lsgroup",
    "add": "/usr/bin/mkgroup",
    "modify": "/usr/bin/chgroup",
    "delete": "/usr/sbin/rmgroup",
}


def members_to_users(value: Any) -> Any:
    if not isinstance(value, (list, tuple)):
        return value
    return ",".join(value)


def users_to_members(value: str) -> List[str]:
    if not value:
        return []
    return value.split(",")


def group_definition() -> ProviderDefinition:
    mappings = MappingRegistry()
    mappings.numeric_mapping("gid", "id")
    mappings.mapping(
        "members", "users",
        property_to_attribute=members_to_users,
        attribute_to_property=users_to_members,
    )
    return ProviderDefinition("group", GROUP_COMMANDS, mappings)
