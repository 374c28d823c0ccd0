"""
Mappings between provider properties and AIX attributes.

Each mapping is stored twice: once keyed by property (used when writing
attributes) and once keyed by AIX attribute (used when reading them back).
"""

import logging
import re
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from exceptions import ValidationError


logger = logging.getLogger(__name__)

_LEADING_INTEGER = re.compile(r"\s*([-+]?\d+)")


def identity(value: Any) -> Any:
    return value


class MappedAttribute:
    """
    One side of a mapping: the name on the other side plus the conversion
    towards it.
    """

    def __init__(self, name: str, convert: Callable[[Any], Any]):
        self.name = name
        self._convert = convert

    def convert(self, value: Any) -> Any:
        return self._convert(value)

    def __repr__(self):
        return f"MappedAttribute(name={self.name!r})"


def integer_to_attribute(property_name: str) -> Callable[[Any], str]:
    """Build a converter that only accepts integers for property_name."""
    def convert(value: Any) -> str:
        # bool is an int subclass, but True is not a uid
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"Invalid value {value!r}: {property_name} must be an Integer!")
        return str(value)

    return convert


def attribute_to_integer(value: str) -> int:
    """
    Convert a numeric AIX attribute to an int.

    Parses a leading integer the way AIX does and falls back to 0 when there
    is none, e.g. "42" -> 42, "12abc" -> 12, "" -> 0.
    """
    match = _LEADING_INTEGER.match(value or "")
    if not match:
        logger.debug(f"Non-numeric attribute value {value!r}, using 0")
        return 0
    return int(match.group(1))


class MappingRegistry:
    """
    Property <=> AIX attribute mappings for one kind of AIX object.

    Registries are filled in when a provider definition is built and frozen
    afterwards.
    """

    def __init__(self):
        self._by_property: Dict[str, MappedAttribute] = {}
        self._by_attribute: Dict[str, MappedAttribute] = {}
        self._frozen = False

    def mapping(self, property_name: str, aix_attribute: Optional[str] = None,
                property_to_attribute: Callable[[Any], Any] = identity,
                attribute_to_property: Callable[[Any], Any] = identity) -> "MappingRegistry":
        """
        Map a property to an AIX attribute.

        aix_attribute defaults to the property name and both conversions
        default to the identity. Mapping the same property again replaces the
        earlier mapping.
        """
        if self._frozen:
            raise RuntimeError(f"Cannot map {property_name}: mappings are frozen")

        aix_attribute = aix_attribute or property_name

        previous = self._by_property.get(property_name)
        if previous is not None:
            logger.warning(
                f"Property {property_name} was already mapped to {previous.name}; "
                f"remapping it to {aix_attribute}"
            )
            self._by_attribute.pop(previous.name, None)

        claimed = self._by_attribute.get(aix_attribute)
        if claimed is not None and claimed.name != property_name:
            logger.warning(
                f"Attribute {aix_attribute} was already mapped to {claimed.name}; "
                f"remapping it to {property_name}"
            )
            self._by_property.pop(claimed.name, None)

        self._by_property[property_name] = MappedAttribute(aix_attribute, property_to_attribute)
        self._by_attribute[aix_attribute] = MappedAttribute(property_name, attribute_to_property)
        return self

    def numeric_mapping(self, property_name: str,
                        aix_attribute: Optional[str] = None) -> "MappingRegistry":
        """Map a purely numeric property to an AIX attribute."""
        return self.mapping(
            property_name,
            aix_attribute,
            property_to_attribute=integer_to_attribute(property_name),
            attribute_to_property=attribute_to_integer,
        )

    def freeze(self) -> "MappingRegistry":
        self._frozen = True
        return self

    @property
    def by_property(self) -> Mapping[str, MappedAttribute]:
        """property => (AIX attribute name, property-to-attribute conversion)"""
        return MappingProxyType(self._by_property)

    @property
    def by_attribute(self) -> Mapping[str, MappedAttribute]:
        """AIX attribute => (property name, attribute-to-property conversion)"""
        return MappingProxyType(self._by_attribute)

    def lookup_by_property(self, property_name: str) -> Optional[MappedAttribute]:
        return self._by_property.get(property_name)

    def lookup_by_attribute(self, aix_attribute: str) -> Optional[MappedAttribute]:
        return self._by_attribute.get(aix_attribute)

    def check_attributes(self, attributes: Mapping[str, Any]) -> None:
        """
        Make sure free-form attributes don't set a mapped property.

        Raises ValidationError naming the property and the attribute, since
        the property's own value would otherwise race with the attribute.
        """
        for property_name, aix_attribute in self._by_property.items():
            if aix_attribute.name in attributes:
                raise ValidationError(
                    f"attributes is setting the {property_name} property via the "
                    f"{aix_attribute.name} attribute! Please specify the {property_name} "
                    f"property's value in the resource declaration."
                )

    def __contains__(self, property_name: str) -> bool:
        return property_name in self._by_property

    def __iter__(self):
        return iter(self._by_property)
