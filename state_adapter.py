"""
Desired-state adapter for diffsync
"""

import json
import logging
import os
from typing import Any, Dict, Mapping

from diffsync import Adapter
from pydantic import ValidationError as ModelValidationError

from exceptions import ValidationError
from models import AixGroup, AixUser
from provider import ProviderDefinition


logger = logging.getLogger(__name__)

# state file section => model name
SECTIONS = {"groups": "group", "users": "user"}

# properties that are not AIX attribute mappings
EXTRA_PROPERTIES = {
    "group": {"attributes"},
    "user": {"attributes", "password"},
}


class StateAdapter(Adapter):
    """
    DiffSync adapter for the declared state.
    Reads users and groups from a JSON state file.
    """

    group = AixGroup
    user = AixUser
    top_level = ["group", "user"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.definitions: Mapping[str, ProviderDefinition] = {}
        # model name => object name => declared properties, including
        # objects declared absent
        self.declared: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def load(self, state_file: str = None):
        """Load the declared users and groups from the state file."""
        state_file = state_file or os.getenv("AIX_STATE_FILE")
        if not state_file:
            raise ValidationError("No state file given and AIX_STATE_FILE is not set")

        logger.info(f"Loading declared state from {state_file}")

        with open(state_file, "r") as f:
            try:
                state = json.load(f)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON in {state_file}: {e}") from e

        self.load_state(state)

    def load_state(self, state: Mapping[str, Any]):
        """Load the declared users and groups from an already parsed state."""
        if not isinstance(state, Mapping):
            raise ValidationError("The state must be a JSON object")

        unknown = set(state) - set(SECTIONS)
        if unknown:
            raise ValidationError(f"Unknown state section(s): {', '.join(sorted(unknown))}")

        for section, modelname in SECTIONS.items():
            self.declared.setdefault(modelname, {})
            present_count = 0

            for entry in state.get(section, []):
                if self._load_entry(modelname, entry):
                    present_count += 1

            absent_count = len(self.declared[modelname]) - present_count
            logger.info(f"Loaded {present_count} present and {absent_count} absent {modelname}(s)")

    def _load_entry(self, modelname: str, entry: Mapping[str, Any]) -> bool:
        """Validate one declared object. Returns whether it should be present."""
        if not isinstance(entry, Mapping) or not entry.get("name"):
            raise ValidationError(f"Every {modelname} needs a name: {entry!r}")

        entry = dict(entry)
        name = str(entry.pop("name"))
        ensure = entry.pop("ensure", "present")

        if name in self.declared[modelname]:
            raise ValidationError(f"{modelname} {name} is declared twice")
        if ensure not in ("present", "absent"):
            raise ValidationError(f"Invalid ensure value for {modelname} {name}: {ensure}")

        properties = self._validate_properties(modelname, name, entry)
        if ensure == "absent":
            self.declared[modelname][name] = {}
            logger.debug(f"Declared {modelname} {name} absent")
            return False

        model_class = getattr(self, modelname)
        try:
            obj = model_class(name=name, **properties)
        except ModelValidationError as e:
            raise ValidationError(f"Invalid properties for {modelname} {name}: {e}") from e

        self.add(obj)
        self.declared[modelname][name] = properties
        logger.debug(f"Declared {modelname} {name}: {', '.join(properties) or 'no properties'}")
        return True

    def _validate_properties(self, modelname: str, name: str,
                             entry: Mapping[str, Any]) -> Dict[str, Any]:
        definition = self.definitions.get(modelname)
        if definition is None:
            raise ValidationError(f"No provider definition for {modelname}s")

        allowed = set(definition.mappings) | EXTRA_PROPERTIES[modelname]
        unknown = set(entry) - allowed
        if unknown:
            raise ValidationError(
                f"Unknown {modelname} properties for {name}: {', '.join(sorted(unknown))}"
            )

        # null means "not managed"
        properties = {key: value for key, value in entry.items() if value is not None}

        attributes = properties.get("attributes")
        if attributes is not None:
            if not isinstance(attributes, Mapping):
                raise ValidationError(f"attributes of {modelname} {name} must be an object")
            try:
                definition.mappings.check_attributes(attributes)
            except ValidationError as e:
                raise ValidationError(f"Invalid attributes for {modelname} {name}: {e}") from e
            properties["attributes"] = {key: str(value) for key, value in attributes.items()}

        return properties
