"""
Generic provider for AIX users and groups.

A ProviderDefinition says which commands manage one kind of object and how its
properties map to AIX attributes. An ObjectStore lists every object of that
kind, and an AixObjectProvider keeps a single object in line with its declared
properties through the list/add/modify/delete commands.
"""

import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import command
from colon_list import attributes_to_args, parse_aix_objects
from exceptions import ExecutionFailure, ProviderError, ValidationError
from mappings import MappedAttribute, MappingRegistry


logger = logging.getLogger(__name__)

Executor = Callable[..., str]

# lsuser/lsgroup: 3004-687 User "foo" does not exist.
NOT_FOUND_PATTERNS = (r"3004-687", r"does not exist")


class Absent(Enum):
    ABSENT = "absent"

    def __repr__(self):
        return "ABSENT"


ABSENT = Absent.ABSENT


class ProviderDefinition:
    """
    Everything a provider needs to know about one kind of AIX object.

    Attributes:
        kind: object kind used in messages ("user", "group")
        commands: command name ("list", "add", "modify", "delete", ...) => path
        mappings: property <=> attribute mappings, frozen on construction
        provider_class: class used for single objects of this kind
    """

    def __init__(self, kind: str, commands: Mapping[str, str], mappings: MappingRegistry,
                 provider_class: Optional[type] = None,
                 not_found_patterns: Iterable[str] = NOT_FOUND_PATTERNS):
        self.kind = kind
        self.commands = dict(commands)
        self.mappings = mappings.freeze()
        self.provider_class = provider_class or AixObjectProvider
        self.not_found_patterns = [re.compile(pattern) for pattern in not_found_patterns]

    def command(self, name: str) -> str:
        try:
            return self.commands[name]
        except KeyError:
            raise KeyError(f"No {name} command defined for {self.kind}") from None

    def is_not_found(self, failure: ExecutionFailure) -> bool:
        """Whether a failed list command means the object doesn't exist."""
        text = failure.output or str(failure)
        return any(pattern.search(text) for pattern in self.not_found_patterns)

    def __repr__(self):
        return f"ProviderDefinition(kind={self.kind!r})"


class ObjectStore:
    """Lists all AIX objects of one kind."""

    def __init__(self, definition: ProviderDefinition, execute: Executor = command.execute):
        self.definition = definition
        self.execute = execute

    def list_all(self) -> Dict[str, Any]:
        """
        List every object of this kind.

        Returns a dict of <object_name> => <id_property_value>.
        """
        id_property = self.definition.mappings.lookup_by_attribute("id")
        if id_property is None:
            raise KeyError(f"No property is mapped to the id attribute of {self.definition.kind}")

        # No IA module arguments needed, we only ask for the id attribute
        cmd = [self.definition.command("list"), "-c", "-a", "id", "ALL"]
        try:
            output = self.execute(cmd)
        except ExecutionFailure as e:
            raise ProviderError(
                f"Could not list {self.definition.kind}s: {e}",
                kind=self.definition.kind, name="ALL", detail=str(e),
            ) from e

        objects = {}
        for name, attributes in parse_aix_objects(output).items():
            objects[name] = id_property.convert(attributes.get("id", ""))

        logger.debug(f"Listed {len(objects)} {self.definition.kind}(s)")
        return objects

    def instances(self, **kwargs) -> List["AixObjectProvider"]:
        """A provider for every existing object of this kind."""
        return [
            self.definition.provider_class(self.definition, name, execute=self.execute, **kwargs)
            for name in self.list_all()
        ]


class AixObjectProvider:
    """
    Manages a single AIX user or group.

    The object is either absent or present; the first read decides which.
    Present objects are cached until the next change or an explicit refresh.
    A provider instance must only ever manage the object it was created for.
    """

    def __init__(self, definition: ProviderDefinition, name: str,
                 should: Optional[Mapping[str, Any]] = None,
                 execute: Executor = command.execute,
                 ia_load_module: Optional[str] = None):
        self.definition = definition
        self.name = name
        self.should = dict(should or {})
        self.execute = execute
        self.ia_load_module = ia_load_module
        self._object_info: Optional[Dict[str, Any]] = None
        self._aix_attributes: Dict[str, str] = {}

    @property
    def kind(self) -> str:
        return self.definition.kind

    @property
    def mappings(self) -> MappingRegistry:
        return self.definition.mappings

    def __repr__(self):
        return f"{type(self).__name__}({self.kind}[{self.name}])"

    # Commands

    def ia_module_args(self) -> List[str]:
        if not self.ia_load_module:
            return []
        return ["-R", str(self.ia_load_module)]

    def lscmd(self) -> List[str]:
        return [self.definition.command("list"), "-c"] + self.ia_module_args() + [self.name]

    def addcmd(self, attributes: Mapping[str, Any]) -> List[str]:
        return ([self.definition.command("add")] + self.ia_module_args()
                + attributes_to_args(attributes) + [self.name])

    def deletecmd(self) -> List[str]:
        return [self.definition.command("delete")] + self.ia_module_args() + [self.name]

    def modifycmd(self, new_attributes: Mapping[str, Any]) -> List[str]:
        return ([self.definition.command("modify")] + self.ia_module_args()
                + attributes_to_args(new_attributes) + [self.name])

    def _error(self, message: str, detail: Any) -> ProviderError:
        return ProviderError(f"{message}: {detail}", kind=self.kind, name=self.name, detail=str(detail))

    # Reading

    def read(self, refresh: bool = False) -> Optional[Dict[str, Any]]:
        """
        Collect the current values of all mapped properties plus the
        attributes property.

        Returns None when the object does not exist.
        """
        if self._object_info is not None and not refresh:
            return self._object_info
        self._object_info = None
        self._aix_attributes = {}

        try:
            output = self.execute(self.lscmd())
        except ExecutionFailure as e:
            if self.definition.is_not_found(e):
                logger.debug(f"Could not find {self.kind} {self.name}: {e}")
                return None
            raise self._error(f"Could not read {self.kind} {self.name}", e) from e

        aix_attributes = parse_aix_objects(output).get(self.name)
        if aix_attributes is None:
            logger.debug(f"{self.kind} {self.name} is missing from the {self.definition.command('list')} output")
            return None

        object_info: Dict[str, Any] = {}
        for attribute, value in aix_attributes.items():
            # Attributes with a property are stored under the property, the
            # rest go into the attributes property
            mapped = self.mappings.lookup_by_attribute(attribute)
            if mapped is not None:
                object_info[mapped.name] = mapped.convert(value)
            else:
                object_info.setdefault("attributes", {})[attribute] = value

        self._aix_attributes = dict(aix_attributes)
        self._object_info = object_info
        return self._object_info

    object_info = read

    def attribute_value(self, property_name: str) -> Any:
        """The AIX attribute behind a mapped property as last read, or ABSENT."""
        mapped = self.mappings.lookup_by_property(property_name)
        if mapped is None or self.read() is None:
            return ABSENT
        return self._aix_attributes.get(mapped.name, ABSENT)

    def exists(self) -> bool:
        return self.read() is not None

    def get(self, property_name: str) -> Any:
        """Current value of a property, or ABSENT."""
        object_info = self.read()
        if object_info is None:
            return ABSENT
        return object_info.get(property_name, ABSENT)

    # Writing

    def _convert_property(self, property_name: str, mapped: MappedAttribute, value: Any) -> Any:
        try:
            return mapped.convert(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"Invalid value for {property_name} on {self.kind}[{self.name}]: {e}"
            ) from e

    def _check_attributes(self, attributes: Mapping[str, Any], action: str) -> None:
        try:
            self.mappings.check_attributes(attributes)
        except ValidationError as e:
            raise ValidationError(f"Could not {action} {self.kind}[{self.name}]: {e}") from e

    def create(self) -> None:
        """
        Create the object from its declared properties.

        Declared free-form attributes are sent as is, every declared mapped
        property is converted to its AIX attribute. Everything goes to a
        single add command.
        """
        attributes = dict(self.should.get("attributes") or {})
        self._check_attributes(attributes, "create")

        for property_name, mapped in self.mappings.by_property.items():
            value = self.should.get(property_name)
            if value is None:
                continue
            attributes[mapped.name] = self._convert_property(property_name, mapped, value)

        try:
            self.execute(self.addcmd(attributes))
        except ExecutionFailure as e:
            raise self._error(f"Could not create {self.kind} {self.name}", e) from e

        logger.info(f"Created {self.kind} {self.name}")
        self._object_info = None

    def _modify_object(self, new_attributes: Mapping[str, Any]) -> None:
        self.execute(self.modifycmd(new_attributes))
        logger.info(f"Modified {self.kind} {self.name}: {', '.join(new_attributes)}")
        self.read(refresh=True)

    def modify(self, new_attributes: Mapping[str, Any]) -> None:
        """Set only the given AIX attributes, then re-read the object."""
        try:
            self._modify_object(new_attributes)
        except ExecutionFailure as e:
            raise self._error(f"Could not modify {self.kind} {self.name}", e) from e

    def delete(self) -> None:
        try:
            self.execute(self.deletecmd())
        except ExecutionFailure as e:
            raise self._error(f"Could not delete {self.kind} {self.name}", e) from e

        logger.info(f"Deleted {self.kind} {self.name}")

        # Re-read so that a deletion that silently did nothing shows up here
        if self.read(refresh=True) is not None:
            raise self._error(f"Could not delete {self.kind} {self.name}", "it still exists")

    def set(self, property_name: str, value: Any) -> None:
        """Set one mapped property through its AIX attribute."""
        if property_name == "attributes":
            raise ValidationError("The attributes property must be set with set_attributes()")

        mapped = self.mappings.lookup_by_property(property_name)
        if mapped is None:
            raise ValidationError(f"{self.kind} has no {property_name} property")

        new_attributes = {mapped.name: self._convert_property(property_name, mapped, value)}
        try:
            self._modify_object(new_attributes)
        except ExecutionFailure as e:
            raise self._error(
                f"Could not set {property_name} on {self.kind}[{self.name}]", e
            ) from e

    def set_attributes(self, new_attributes: Mapping[str, Any]) -> None:
        """
        Set free-form attributes only. Attributes belonging to a mapped
        property are rejected.
        """
        self._check_attributes(new_attributes, "set attributes on")
        try:
            self._modify_object(new_attributes)
        except ExecutionFailure as e:
            raise self._error(f"Could not set attributes on {self.kind}[{self.name}]", e) from e

    @property
    def attributes(self) -> Any:
        return self.get("attributes")

    @attributes.setter
    def attributes(self, new_attributes: Mapping[str, Any]) -> None:
        self.set_attributes(new_attributes)
