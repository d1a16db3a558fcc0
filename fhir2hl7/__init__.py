"""Convert FHIR R4 resources into HL7 v2.5 ADT messages."""

from .config import ConversionOptions, load_options
from .exceptions import ConversionError, InvalidRecordKind, MissingPrimarySubject
from .messages import build_segments, convert_fhir_to_hl7, determine_message_type
from .utils import Clock, FixedClock
from .validate import validate_fhir_resource

__all__ = [
    "Clock",
    "ConversionError",
    "ConversionOptions",
    "FixedClock",
    "InvalidRecordKind",
    "MissingPrimarySubject",
    "build_segments",
    "convert_fhir_to_hl7",
    "determine_message_type",
    "load_options",
    "validate_fhir_resource",
]
