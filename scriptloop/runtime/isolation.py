from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, Mapping, MutableMapping, Sequence

from scriptloop.core.logging import get_logger, log_event

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """
    Process-start ("gold") copy of the environment.

    Taken once; every restore compares against it so drift never accumulates
    across iterations.
    """

    values: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def capture(cls, environ: Mapping[str, str] | None = None) -> "EnvironmentSnapshot":
        source = os.environ if environ is None else environ
        return cls(values=dict(source))

    def restore(self, environ: MutableMapping[str, str] | None = None) -> None:
        target = os.environ if environ is None else environ

        reset = 0
        for name, value in self.values.items():
            if target.get(name) != value:
                target[name] = value
                reset += 1

        removed = [name for name in list(target) if name not in self.values]
        for name in removed:
            del target[name]

        if reset or removed:
            log_event(
                logger,
                "environment_restored",
                reset=reset,
                removed=sorted(removed),
            )


def snapshot_bindings(namespace: Mapping[str, object]) -> tuple[str, ...]:
    """Ordered names bound in a global namespace."""
    return tuple(namespace)


def new_bindings(before: Sequence[str], after: Sequence[str]) -> list[str]:
    existing = set(before)
    return [name for name in after if name not in existing]


def purge_bindings(
    namespace: MutableMapping[str, object],
    names: Iterable[str],
) -> list[str]:
    """
    Remove ``names`` from ``namespace``; returns the names that could not be
    removed. Failures are logged and never raised.
    """
    failed: list[str] = []
    for name in names:
        try:
            del namespace[name]
        except Exception as exc:
            failed.append(name)
            log_event(
                logger,
                "binding_purge_failed",
                level=logging.WARNING,
                name=name,
                error=str(exc),
            )
    return failed
