from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class LoopConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SCRIPTLOOP_", case_sensitive=False)

    disable_native_capture: bool = False
    stdout_target: str = ""
    stderr_target: str = ""
    script_dir: Path = Path(".")
    script_name: str = "loop_script.py"
    log_level: str = "info"
    log_format: str = "json"
    log_dir: Path | None = None


@lru_cache
def get_loop_config() -> LoopConfig:
    return LoopConfig()
