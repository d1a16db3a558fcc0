"""FHIR resources -> HL7 v2 ADT message.

Segment order is fixed: MSH, EVN, PID, PV1?, NK1*, AL1*, DG1*, OBX*.
Repeatable segments are numbered 1..N in input order.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from .config import ConversionOptions, coerce_options
from .exceptions import MissingPrimarySubject
from .models import MessageType, Resource, ResourceGroups, ResourceType, Segment
from .segments import al1, dg1, encounter_class_code, evn, msh, nk1, obx, pid, pv1
from .tables import INPATIENT_CLASS, MESSAGE_TYPE_BY_STATUS, ADMIT, UPDATE
from .utils import Clock, dig, fhir_datetime_to_hl7, join_segments, ts_hl7

logger = logging.getLogger(__name__)


def determine_message_type(encounter: Optional[Resource]) -> MessageType:
    """Pick the ADT trigger from the Encounter's status, then its class."""
    if not encounter:
        return UPDATE
    status = encounter.get("status")
    by_status = MESSAGE_TYPE_BY_STATUS.get(status) if isinstance(status, str) else None
    if by_status is not None:
        return by_status
    if encounter_class_code(encounter) == INPATIENT_CLASS:
        return ADMIT
    return UPDATE


def collect_resources(fhir_resource: Any) -> List[Resource]:
    """Unwrap a Bundle, list or single resource into a flat resource list."""
    if fhir_resource is None:
        raise ValueError("FHIR resource is required")
    if isinstance(fhir_resource, list):
        resources = fhir_resource
    elif isinstance(fhir_resource, dict) and fhir_resource.get("resourceType") == ResourceType.BUNDLE:
        resources = [dig(e, "resource") for e in fhir_resource.get("entry") or []]
    else:
        resources = [fhir_resource]
    return [r for r in resources if isinstance(r, dict) and r]


def group_resources(resources: List[Resource]) -> ResourceGroups:
    def of(kind: str) -> List[Resource]:
        return [r for r in resources if r.get("resourceType") == kind]

    patients = of(ResourceType.PATIENT)
    if not patients:
        raise MissingPrimarySubject()
    if len(patients) > 1:
        logger.warning("Found %d Patient resources; using the first (id=%s)", len(patients), patients[0].get("id"))

    encounters = of(ResourceType.ENCOUNTER)
    if len(encounters) > 1:
        logger.warning("Found %d Encounter resources; only the first becomes PV1", len(encounters))

    return ResourceGroups(
        patient=patients[0],
        encounter=encounters[0] if encounters else None,
        related_persons=of(ResourceType.RELATED_PERSON),
        allergies=of(ResourceType.ALLERGY_INTOLERANCE),
        conditions=of(ResourceType.CONDITION),
        observations=of(ResourceType.OBSERVATION),
        practitioners=of(ResourceType.PRACTITIONER),
    )


def _numbered(resources: List[Resource], builder: Callable[..., Optional[Segment]], **kwargs: Any) -> List[Segment]:
    segs: List[Segment] = []
    for set_id, resource in enumerate(resources, start=1):
        seg = builder(resource, set_id, **kwargs)
        if seg:
            segs.append(seg)
    return segs


def build_segments(
    fhir_resource: Any,
    options: Optional[ConversionOptions | dict] = None,
    clock: Optional[Clock] = None,
) -> List[Segment]:
    opts = coerce_options(options)
    clock = clock or Clock()
    groups = group_resources(collect_resources(fhir_resource))
    encounter = groups.encounter

    kind = determine_message_type(encounter)
    logger.debug(
        "Building %s for Patient/%s (%d NK1, %d AL1, %d DG1, %d OBX)",
        kind.message_type, groups.patient.get("id"), len(groups.related_persons),
        len(groups.allergies), len(groups.conditions), len(groups.observations),
    )

    now = clock.now()
    recorded_source = dig(encounter, "period", "start") or dig(groups.patient, "meta", "lastUpdated")
    recorded = fhir_datetime_to_hl7(recorded_source) if recorded_source else ts_hl7(now)

    parts: List[Segment] = [
        msh(kind.message_type, clock.control_id(now), now, opts),
        evn(kind.event_type, recorded, opts.operator_id),
        pid(groups.patient, now),
    ]
    if encounter:
        visit = pv1(encounter, groups.practitioners)
        if visit:
            parts.append(visit)
    parts.extend(_numbered(groups.related_persons, nk1))
    parts.extend(_numbered(groups.allergies, al1))
    parts.extend(_numbered(groups.conditions, dg1, practitioners=groups.practitioners))
    parts.extend(_numbered(groups.observations, obx))
    return parts


def convert_fhir_to_hl7(
    fhir_resource: Any,
    options: Optional[ConversionOptions | dict] = None,
    clock: Optional[Clock] = None,
) -> str:
    """Convert a FHIR resource, list of resources or Bundle to one HL7 v2 message.

    Raises MissingPrimarySubject when no Patient is present. ``options`` may be
    a ConversionOptions or a mapping such as ``{"sendingApplication": "EHR"}``.
    Pass a ``clock`` (e.g. FixedClock) to pin the MSH timestamp and control id.
    """
    return join_segments(build_segments(fhir_resource, options, clock))
