"""
AIX adapter for diffsync
"""

import logging
from typing import Any, Dict, Mapping, Optional

from diffsync import Adapter

import command
from group_provider import group_definition
from models import AixGroup, AixUser
from provider import ABSENT, AixObjectProvider, Executor, ObjectStore, ProviderDefinition
from user_provider import PASSWD_FILE, user_definition


logger = logging.getLogger(__name__)


def build_definitions(execute: Executor = command.execute) -> Dict[str, ProviderDefinition]:
    """Provider definitions for AIX groups and users, keyed by model name."""
    groups = group_definition()
    users = user_definition(ObjectStore(groups, execute))
    return {"group": groups, "user": users}


class AixAdapter(Adapter):
    """
    DiffSync adapter for AIX.
    Reads users and groups with the ls* commands and applies changes with the
    mk*, ch* and rm* commands.
    """

    group = AixGroup
    user = AixUser
    top_level = ["group", "user"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.execute: Executor = command.execute
        self.definitions: Dict[str, ProviderDefinition] = {}
        self.ia_load_module: Optional[str] = None
        self.passwd_file: str = PASSWD_FILE
        self.dry_run: bool = False
        self.pending_operations: list = []
        # model name => object name => declared properties. Only declared
        # objects are loaded, and only their declared properties.
        self.declared: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def connect_aix(self):
        """Build the provider definitions used to talk to AIX."""
        if not self.definitions:
            self.definitions = build_definitions(self.execute)
        logger.info(
            f"Managing AIX {', '.join(self.definitions)}"
            + (f" through IA module {self.ia_load_module}" if self.ia_load_module else "")
        )

    def provider(self, modelname: str, name: str,
                 should: Optional[Mapping[str, Any]] = None) -> AixObjectProvider:
        """A provider for a single user or group."""
        definition = self.definitions[modelname]
        kwargs = {}
        if modelname == "user":
            kwargs["passwd_file"] = self.passwd_file
        return definition.provider_class(
            definition, name, should=should, execute=self.execute,
            ia_load_module=self.ia_load_module, **kwargs
        )

    def load(self):
        """Load the declared users and groups that exist on AIX."""
        logger.info("Loading data from AIX")

        if not self.definitions:
            self.connect_aix()

        try:
            for modelname in self.top_level:
                self._load_objects(modelname)
        except Exception as e:
            logger.error(f"Failed to load data from AIX: {e}")
            raise

    def _load_objects(self, modelname: str):
        declared = self.declared.get(modelname, {})
        existing = ObjectStore(self.definitions[modelname], self.execute).list_all()
        object_count = 0

        for name in existing:
            if name not in declared:
                logger.debug(f"Skipping {modelname} '{name}' - not declared")
                continue

            provider = self.provider(modelname, name)
            object_info = provider.read()
            if object_info is None:
                logger.warning(f"{modelname} {name} was listed but could not be read")
                continue

            values = {
                prop: self._current_value(provider, object_info, prop, declared_value)
                for prop, declared_value in declared[name].items()
            }
            self.add(getattr(self, modelname)(name=name, **values))
            object_count += 1
            logger.debug(f"Loaded {modelname} {name}")

        logger.info(f"Loaded {object_count} declared {modelname}(s) from AIX")

    def _current_value(self, provider: AixObjectProvider, object_info: Mapping[str, Any],
                       prop: str, declared_value: Any) -> Any:
        """The current value of a declared property, shaped like the declaration."""
        if prop == "attributes":
            # Free-form attributes that were not declared are left alone
            current = object_info.get("attributes", {})
            return {key: current[key] for key in declared_value if key in current}

        if prop == "password":
            current = provider.password
            return None if current is ABSENT else current

        current = object_info.get(prop, ABSENT)
        if current is ABSENT:
            return "absent" if declared_value == "absent" else None

        # Some declarations don't survive the read back as is (an expiry with
        # a time only reads back as a date), so compare what AIX stores
        if current != declared_value and self._stored_as(provider, prop, declared_value):
            return declared_value

        # A gid declared as a group name is compared as a group name
        if isinstance(declared_value, str) and not isinstance(current, str):
            return provider.mappings.lookup_by_property(prop).convert(current)

        # Member order doesn't matter to AIX
        if isinstance(current, list) and isinstance(declared_value, list):
            if sorted(current) == sorted(declared_value):
                return list(declared_value)

        return current

    @staticmethod
    def _stored_as(provider: AixObjectProvider, prop: str, declared_value: Any) -> bool:
        """Whether AIX already holds the attribute value declared_value turns into."""
        mapped = provider.mappings.lookup_by_property(prop)
        if mapped is None:
            return False
        try:
            wanted = mapped.convert(declared_value)
        except (TypeError, ValueError):
            # Left to the provider to reject when the change is applied
            return False
        return str(wanted) == provider.attribute_value(prop)

    def apply_operation(self, operation: str, modelname: str, name: str, attrs: Mapping[str, Any]):
        """Apply a single queued create/update/delete to AIX."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would {operation} {modelname} {name}"
                        + (f": {', '.join(attrs)}" if attrs else ""))
            return

        if operation == 'create':
            self.provider(modelname, name, should=attrs).create()
        elif operation == 'update':
            provider = self.provider(modelname, name)
            for prop, value in attrs.items():
                if prop == "attributes":
                    provider.set_attributes(value)
                elif prop == "password":
                    provider.password = value
                else:
                    provider.set(prop, value)
            logger.info(f"Updated {modelname} {name}: {', '.join(attrs)}")
        elif operation == 'delete':
            self.provider(modelname, name).delete()
        else:
            raise ValueError(f"Unknown operation {operation}")

    def execute_pending_operations(self):
        """Execute all pending operations that were queued during sync."""
        if not self.pending_operations:
            logger.info("No pending operations to execute")
            return

        logger.info(f"Executing {len(self.pending_operations)} pending operations")

        # Groups are created before the users referring to them, and users
        # are deleted before their groups
        deletes = [op for op in self.pending_operations if op[0] == 'delete']
        others = [op for op in self.pending_operations if op[0] != 'delete']

        for operation, modelname, name, attrs in others + deletes[::-1]:
            try:
                self.apply_operation(operation, modelname, name, attrs)
            except Exception as e:
                logger.error(f"Failed to {operation} {modelname} {name}: {e}")
                raise

        # Clear the pending operations
        self.pending_operations = []
