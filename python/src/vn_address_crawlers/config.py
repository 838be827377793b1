from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://address-converter.io.vn/"
TRUTHY = {"1", "true", "yes", "on"}
ON_EXHAUSTED_CHOICES = ("record", "abort")


@dataclass(frozen=True)
class RunProfile:
    name: str
    headless: bool
    operation_delay: float
    item_delay: float
    timeout_seconds: float
    block_resources: bool


PROFILES: dict[str, RunProfile] = {
    "speed": RunProfile(
        name="speed",
        headless=True,
        operation_delay=1.5,
        item_delay=1.5,
        timeout_seconds=30,
        block_resources=True,
    ),
    "debug": RunProfile(
        name="debug",
        headless=False,
        operation_delay=3.0,
        item_delay=2.0,
        timeout_seconds=30,
        block_resources=False,
    ),
    "balanced": RunProfile(
        name="balanced",
        headless=True,
        operation_delay=1.5,
        item_delay=1.0,
        timeout_seconds=15,
        block_resources=True,
    ),
}


@dataclass(frozen=True)
class Settings:
    base_url: str
    input_file: Path
    output_file: Path
    progress_file: Path
    max_attempts: int
    on_exhausted: str
    profile: RunProfile
    checkpoint_every: int = 10
    refresh_every: int = 20


def env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in TRUTHY


def load_env(project_root: Path | None = None) -> None:
    if project_root is not None:
        load_dotenv(project_root / ".env", override=False)
    else:
        load_dotenv(override=False)


def resolve_profile(*, speed: bool = False, debug: bool = False) -> RunProfile:
    if speed or env_flag("SPEED_MODE"):
        return PROFILES["speed"]
    if debug or env_flag("DEBUG_MODE"):
        return PROFILES["debug"]
    return PROFILES["balanced"]


def override_profile(
    profile: RunProfile,
    *,
    timeout_seconds: float | None = None,
    headless: bool | None = None,
) -> RunProfile:
    if timeout_seconds is not None:
        profile = replace(profile, timeout_seconds=timeout_seconds)
    if headless is not None:
        profile = replace(profile, headless=headless)
    return profile
