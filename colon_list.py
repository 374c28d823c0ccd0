"""
Parsing helpers for the colon-formatted output of the AIX ls* commands.

`lsuser -c` and `lsgroup -c` print one stanza per object:

    #name:<attr1>:<attr2> ...
    <name>:<value1>:<value2> ...

Colons inside values are escaped as "#!:". We parse this format instead of the
default one because values such as 'gecos' may contain spaces.
"""

import logging
from typing import Dict, List, Mapping

from exceptions import ParseError


logger = logging.getLogger(__name__)


def parse_colon_separated_list(text: str, sep: str = ":") -> List[str]:
    """
    Parse a colon-separated list such as <item1>:<item2>:<item3>.

    Returns the parsed items, e.g. [<item1>, <item2>, <item3>]. Separators
    escaped with "#!" belong to the item they appear in.
    """
    escaped_sep = "#!" + sep

    # Split on the escaped separator first. Each chunk is then a plain list
    # separated by sep. The last item of one chunk and the first item of the
    # next one were a single item joined by an escaped separator.
    # str.split keeps empty items at both ends, so joining any split result
    # with its separator gives back the input: "" is one empty item, a lone
    # separator is two.
    chunks = [chunk.split(sep) for chunk in text.split(escaped_sep)]

    items = chunks[0]
    for chunk in chunks[1:]:
        left = items.pop()
        items.append(f"{left}{sep}{chunk[0]}")
        items.extend(chunk[1:])

    return items


def parse_aix_objects(output: str) -> Dict[str, Dict[str, str]]:
    """
    Parse AIX objects from colon-formatted command output.

    Returns a dict of <object_name> => <attributes>, where attributes keeps
    the order the command reported them in and no longer holds 'name'.
    """
    objects: Dict[str, Dict[str, str]] = {}

    # Object names cannot begin with '#', so every object starts right after
    # a '#' at the beginning of a line.
    text = output.rstrip("\n")
    if not text:
        return objects

    leading, *stanzas = text.split("\n#")
    if leading.startswith("#"):
        stanzas.insert(0, leading[1:])
    elif leading.strip():
        raise ParseError(f"Unexpected output before the first stanza: {leading!r}")

    for stanza in stanzas:
        lines = stanza.rstrip("\n").split("\n")
        if len(lines) != 2:
            raise ParseError(
                f"Expected a header line and a value line, got {len(lines)} line(s): {stanza!r}"
            )

        attributes_line, values_line = lines
        attributes = parse_colon_separated_list(attributes_line.rstrip("\r"))
        values = parse_colon_separated_list(values_line.rstrip("\r"))

        if len(attributes) != len(values):
            raise ParseError(
                f"Header has {len(attributes)} field(s) but values have {len(values)}: {stanza!r}"
            )

        attributes_hash = dict(zip(attributes, values))
        if "name" not in attributes_hash:
            raise ParseError(f"Stanza has no name field: {stanza!r}")

        object_name = attributes_hash.pop("name")
        objects[object_name] = attributes_hash
        logger.debug(f"Parsed {object_name} with {len(attributes_hash)} attribute(s)")

    return objects


def attributes_to_args(attributes: Mapping[str, str]) -> List[str]:
    """Convert an attributes mapping to attr=value command-line arguments."""
    return [f"{attribute}={value}" for attribute, value in attributes.items()]
