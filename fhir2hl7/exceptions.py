"""Errors raised while converting FHIR resources to HL7 v2."""

from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """Base exception for all FHIR -> HL7 conversion failures."""

    def __init__(self, message: str, resource_type: Optional[str] = None):
        self.resource_type = resource_type
        if resource_type:
            message = f"{message} [resourceType={resource_type}]"
        super().__init__(message)


class MissingPrimarySubject(ConversionError):
    """Raised when the input carries no Patient resource."""

    def __init__(self, message: str = "Patient resource is required for HL7 conversion"):
        super().__init__(message)


class InvalidRecordKind(ConversionError):
    """Raised when the PID builder is handed something other than a Patient."""

    def __init__(self, resource_type: Optional[str] = None):
        super().__init__("Invalid Patient resource", resource_type=resource_type or "<missing>")
