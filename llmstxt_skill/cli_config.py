"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

CONFIG_DIR = Path.home() / ".config" / "llmstxt-skill"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
) -> None:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env in the current working directory
    2. ~/.config/llmstxt-skill/.env

    If neither exists and the packaged .env.example is found, it is copied
    to the user config directory first.
    """
    local_env = cwd / ".env"
    if local_env.is_file():
        load_env(local_env)
        return

    if config_env_file.is_file():
        load_env(config_env_file)
        return

    example_file = Path(__file__).parent.parent / ".env.example"
    if not example_file.is_file():
        return

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(example_file, config_env_file)
    except OSError as exc:
        logging.debug("Could not create %s: %s", config_env_file, exc)
        return

    logging.info(
        "Created config file at %s from .env.example. "
        "Edit it to change LLMSTXT_* defaults.",
        config_env_file,
    )
    load_env(config_env_file)
