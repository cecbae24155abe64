from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from scriptloop.core.errors import ProtocolViolation


class Entry(BaseModel):
    """One unit of work received from the parent."""

    model_config = ConfigDict(extra="allow")

    script: str
    linecount: int
    native: bool = False

    @property
    def context(self) -> dict[str, Any]:
        """Everything the parent sent except the code itself."""
        return self.model_dump(exclude={"script"})


def parse_entry(line: str) -> Entry:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolViolation(f"Invalid JSON entry: {exc}") from exc

    if not isinstance(data, dict):
        raise ProtocolViolation("Entry must be a JSON object")

    try:
        return Entry.model_validate(data)
    except ValidationError as exc:
        err = exc.errors()[0]
        location = ".".join(str(part) for part in err["loc"]) or "entry"
        raise ProtocolViolation(f"Invalid entry field '{location}': {err['msg']}") from exc
