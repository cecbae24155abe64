from typing import Dict
import json

from importlib.resources import files
from referencing import Registry, Resource
from jsonschema import Draft202012Validator

from scriptloop.core.errors import ProtocolViolation
from scriptloop.protocol.messages import Message, MessageType


class ProtocolValidator:
    """
    Enforces schema validity of the frames the loop reports to its parent.
    """

    SCHEMA_VERSION = "1.0"

    def __init__(self) -> None:
        self._registry = self._load_all_schemas()
        self._validators = self._load_validators()

    # ----------------------------
    # Schema loading
    # ----------------------------

    def _schema_root(self):
        return files("scriptloop.protocol.schemas") / "loop" / self.SCHEMA_VERSION

    def _load_all_schemas(self) -> Registry:
        registry = Registry()

        for entry in self._schema_root().iterdir():
            if not entry.name.endswith(".json"):
                continue

            schema = json.loads(entry.read_text(encoding="utf-8"))
            registry = registry.with_resource(
                schema["$id"],
                Resource.from_contents(schema),
            )

        return registry

    def _load_validators(self) -> Dict[MessageType, Draft202012Validator]:
        validators: Dict[MessageType, Draft202012Validator] = {}

        for msg_type in MessageType:
            schema = json.loads(
                (self._schema_root() / f"{msg_type.value}.json").read_text(
                    encoding="utf-8"
                )
            )

            validators[msg_type] = Draft202012Validator(
                schema=schema,
                registry=self._registry,
            )

        return validators

    # ----------------------------
    # Validation
    # ----------------------------

    def validate(self, msg: Message) -> None:
        try:
            validator = self._validators[msg.type]
        except KeyError:
            raise ProtocolViolation(
                f"No schema registered for '{msg.type.value}'"
            )

        instance = msg.to_dict()

        errors = sorted(validator.iter_errors(instance), key=str)
        if errors:
            err = errors[0]
            raise ProtocolViolation(
                f"Invalid {msg.type.value} message: {err.message}"
            )
