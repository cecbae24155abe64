import io
import json

import pytest

from scriptloop.core.config import LoopConfig
from scriptloop.runtime.loop import LoopContext, ScriptLoop


def entry_line(script: str, linecount: int = 0, **extra) -> str:
    return json.dumps({"script": script, "linecount": linecount, **extra}) + "\n"


def frames(outbound: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in outbound.getvalue().splitlines()]


@pytest.fixture
def loop_factory(tmp_path):
    """Build a loop wired to in-memory streams; descriptor capture is off."""
    contexts = []

    def factory(*lines: str, **overrides):
        config = LoopConfig(
            disable_native_capture=True,
            script_dir=tmp_path / "scripts",
            **overrides,
        )
        inbound = io.StringIO("".join(lines))
        outbound = io.StringIO()
        context = LoopContext.bootstrap(config, inbound=inbound, outbound=outbound)
        contexts.append(context)
        return ScriptLoop(context), outbound

    yield factory

    for context in contexts:
        context.close()
