"""Completion parameter defaults per reasoning role."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ResponseParameterStore:
    """Maintain per-role completion parameters (temperature, token caps)."""

    _DEFAULTS: Mapping[str, dict[str, Any]] = {
        "router": {"temperature": 0.0, "max_tokens": 150},
        "order": {"temperature": 0.3, "max_tokens": 1024},
        "billing": {"temperature": 0.3, "max_tokens": 1024},
        "support": {"temperature": 0.5, "max_tokens": 1024},
    }

    def __init__(self, overrides: Mapping[str, Mapping[str, Any]] | None = None):
        self._defaults: dict[str, dict[str, Any]] = {
            role: dict(params) for role, params in self._DEFAULTS.items()
        }
        if overrides:
            for role, params in overrides.items():
                merged = self._defaults.setdefault(role.lower(), {})
                merged.update(params)

    def defaults_for(self, role: str) -> dict[str, Any]:
        return dict(self._defaults.get(role.lower(), {"temperature": 0.5}))

    def merge(self, role: str, *overrides: Mapping[str, Any] | None) -> dict[str, Any]:
        """Merge overrides on top of the role defaults."""

        params = self.defaults_for(role)
        for override in overrides:
            if override:
                params.update(override)
        return params
