from __future__ import annotations

import builtins
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from scriptloop.runtime.isolation import new_bindings, snapshot_bindings


def fresh_namespace() -> dict[str, Any]:
    return {"__name__": "__main__", "__builtins__": builtins}


@dataclass
class ExecutionOutcome:
    script_path: Optional[Path]
    new_bindings: list[str] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Sandbox:
    """
    Runs snippets as temporary script files against one persistent global
    namespace.
    """

    def __init__(
        self,
        directory: Path,
        default_name: str = "loop_script.py",
        namespace: Optional[MutableMapping[str, Any]] = None,
    ) -> None:
        self.directory = Path(directory).resolve()
        self.default_name = default_name
        self.namespace = namespace if namespace is not None else fresh_namespace()

    def materialize(self, code: str) -> Path:
        """
        Write ``code`` to the default script name, or to a timestamped one
        when a file by that name already exists.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / self.default_name
        try:
            with open(path, "x", encoding="utf-8") as handle:
                handle.write(code)
            return path
        except FileExistsError:
            pass

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        fallback = path.with_name(f"{path.stem}_{stamp}{path.suffix}")
        fallback.write_text(code, encoding="utf-8")
        return fallback

    def run(
        self,
        code: str,
        injected: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionOutcome:
        path = self.materialize(code)
        outcome = ExecutionOutcome(script_path=path)

        self.namespace["__file__"] = str(path)
        before = snapshot_bindings(self.namespace)
        if injected:
            self.namespace.update(injected)

        try:
            source = path.read_text(encoding="utf-8")
            exec(compile(source, str(path), "exec"), self.namespace)
        except BaseException as exc:
            # Any fault, SystemExit and KeyboardInterrupt included, belongs to the entry.
            outcome.error = exc

        outcome.new_bindings = new_bindings(before, snapshot_bindings(self.namespace))
        return outcome

    def discard(self, path: Optional[Path]) -> None:
        if path is None:
            return
        path.unlink(missing_ok=True)
