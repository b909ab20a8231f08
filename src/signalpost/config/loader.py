# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/signalpost/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from .models import SignalpostConfig

log = logging.getLogger("signalpost")

LOCAL_OVERRIDE_NAME = "signalpost.local.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text(encoding="utf-8")
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def _find_config(path: str | Path | None) -> Path | None:
    if path is not None:
        return Path(path)
    env = os.environ.get("SIGNALPOST_CONFIG")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("SIGNALPOST_CONFIG=%s does not exist, using defaults", env)
    return None


def load_config(path: str | Path | None = None) -> SignalpostConfig:
    """
    Load and validate a signalpost YAML config.

    Lookup order:
      1. ``path`` argument (must exist)
      2. ``SIGNALPOST_CONFIG`` env var
      3. built-in defaults

    A ``signalpost.local.yaml`` next to the config file is deep-merged over
    it, and ``${ENV_VAR}`` placeholders are expanded in both.
    """
    config_path = _find_config(path)
    if config_path is None:
        log.debug("No config file, using defaults")
        return SignalpostConfig()

    data = _load_yaml(config_path)

    local = config_path.parent / LOCAL_OVERRIDE_NAME
    if local.is_file() and local.resolve() != config_path.resolve():
        log.debug("Merging local overrides from %s", local)
        _deep_merge(data, _load_yaml(local))

    return SignalpostConfig.model_validate(data)
