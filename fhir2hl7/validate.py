"""Shape check for incoming FHIR resources."""

from __future__ import annotations

from typing import Any


def validate_fhir_resource(resource: Any) -> bool:
    """True if ``resource`` is a dict carrying a non-empty string resourceType.

    No schema validation beyond that; callers needing stricter checks must run
    them before conversion.
    """
    if not isinstance(resource, dict):
        return False
    resource_type = resource.get("resourceType")
    return isinstance(resource_type, str) and bool(resource_type)
