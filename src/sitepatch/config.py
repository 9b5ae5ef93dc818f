# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Engine tunables with SITEPATCH_* environment overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache

from sitepatch.errors import ConfigError

DEFAULT_FUZZY_THRESHOLD = 0.85
DEFAULT_FUZZY_MIN_LENGTH = 12
DEFAULT_SIMILARITY_THRESHOLD = 0.9
DEFAULT_MAX_COMPONENT_PASSES = 3

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True, slots=True)
class EngineSettings:
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    fuzzy_min_length: int = DEFAULT_FUZZY_MIN_LENGTH
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    max_component_passes: int = DEFAULT_MAX_COMPONENT_PASSES
    enable_fuzzy: bool = True

    def __post_init__(self) -> None:
        for key in ("fuzzy_threshold", "similarity_threshold"):
            value = getattr(self, key)
            if not 0.0 < value <= 1.0:
                raise ConfigError(f"{key} must be in (0, 1], got {value}", key=key)
        if self.fuzzy_min_length < 1:
            raise ConfigError(f"fuzzy_min_length must be >= 1, got {self.fuzzy_min_length}", key="fuzzy_min_length")
        if self.max_component_passes < 1:
            raise ConfigError(
                f"max_component_passes must be >= 1, got {self.max_component_passes}", key="max_component_passes"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineSettings:
        """Build settings from SITEPATCH_* variables; unset ones keep defaults."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        raw = env.get("SITEPATCH_FUZZY_THRESHOLD", "").strip()
        if raw:
            kwargs["fuzzy_threshold"] = _parse(raw, float, "SITEPATCH_FUZZY_THRESHOLD")

        raw = env.get("SITEPATCH_FUZZY_MIN_LENGTH", "").strip()
        if raw:
            kwargs["fuzzy_min_length"] = _parse(raw, int, "SITEPATCH_FUZZY_MIN_LENGTH")

        raw = env.get("SITEPATCH_SIMILARITY_THRESHOLD", "").strip()
        if raw:
            kwargs["similarity_threshold"] = _parse(raw, float, "SITEPATCH_SIMILARITY_THRESHOLD")

        raw = env.get("SITEPATCH_MAX_COMPONENT_PASSES", "").strip()
        if raw:
            kwargs["max_component_passes"] = _parse(raw, int, "SITEPATCH_MAX_COMPONENT_PASSES")

        disable = env.get("SITEPATCH_DISABLE_FUZZY", "").strip().lower()
        if disable in _TRUTHY:
            kwargs["enable_fuzzy"] = False

        return cls(**kwargs)


def _parse(raw: str, kind: type, key: str):
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{key}={raw!r} is not a valid {kind.__name__}", key=key) from None


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Process-wide settings, read from the environment once."""
    return EngineSettings.from_env()
