"""Conversion options (MSH/EVN header settings).

Options can be built directly, from a mapping using either the camelCase keys
callers of the JSON API send (``sendingApplication``) or snake_case keys, or
from a YAML file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionOptions:
    sending_application: str = "FHIR-HYDRANT"
    sending_facility: str = "FHIR-HYDRANT-FACILITY"
    receiving_application: str = "RECEIVING-APP"
    receiving_facility: str = "RECEIVING-FACILITY"
    processing_id: str = "P"   # P=Production, T=Test
    version_id: str = "2.5"
    operator_id: str = "SendingUserID"  # EVN-5

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "ConversionOptions":
        """Build options from a dict; unset or empty values keep the defaults.

        Values must be strings; anything else raises TypeError.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (mapping or {}).items():
            name = _snake(str(key))
            if name not in known:
                logger.debug("Ignoring unknown conversion option %r", key)
                continue
            if value is None or value == "":
                continue
            # YAML reads `versionId: 2.10` as the float 2.1, so only strings are accepted.
            if not isinstance(value, str):
                raise TypeError(
                    f"Conversion option {key!r} must be a string, got {type(value).__name__} {value!r}; "
                    "quote it in YAML"
                )
            values[name] = value
        return cls(**values)

    def merged(self, **overrides: Optional[str]) -> "ConversionOptions":
        """Copy with the non-empty ``overrides`` applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v})


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def coerce_options(options: Any) -> ConversionOptions:
    if options is None:
        return ConversionOptions()
    if isinstance(options, ConversionOptions):
        return options
    if isinstance(options, Mapping):
        return ConversionOptions.from_mapping(options)
    raise TypeError(f"Expected ConversionOptions or mapping; got {type(options).__name__}")


def load_options(path: str | Path) -> ConversionOptions:
    """Read options from a YAML file. An empty file yields the defaults."""
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Expected a mapping of options in: {p}")
    # Allow the options to live under a top-level 'hl7' key.
    if isinstance(data.get("hl7"), Mapping):
        data = data["hl7"]
    return ConversionOptions.from_mapping(data)
