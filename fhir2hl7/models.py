"""Data models shared by the FHIR -> HL7 converter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

# A FHIR resource exactly as it arrives from JSON.
Resource = Dict[str, Any]

# One HL7 segment: element 0 is the segment tag, the rest are field slots.
Segment = List[str]


class ResourceType:
    PATIENT = "Patient"
    ENCOUNTER = "Encounter"
    RELATED_PERSON = "RelatedPerson"
    OBSERVATION = "Observation"
    ALLERGY_INTOLERANCE = "AllergyIntolerance"
    CONDITION = "Condition"
    PRACTITIONER = "Practitioner"
    BUNDLE = "Bundle"


@dataclass(frozen=True)
class MessageType:
    message_type: str  # MSH-9, e.g. "ADT^A01"
    event_type: str    # EVN-1, e.g. "A01"


@dataclass
class ResourceGroups:
    """Input resources partitioned by kind, each list in input order."""

    patient: Resource
    encounter: Resource | None
    related_persons: List[Resource]
    allergies: List[Resource]
    conditions: List[Resource]
    observations: List[Resource]
    practitioners: List[Resource]
