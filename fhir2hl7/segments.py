"""HL7 segment builders (MSH/EVN/PID/PV1/NK1/AL1/DG1/OBX).

Every builder returns a fixed-length list of field slots whose first element
is the segment tag. Missing FHIR data always lands as an empty slot.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import ConversionOptions
from .exceptions import InvalidRecordKind
from .models import Resource, ResourceType, Segment
from .tables import (
    ABNORMAL_FLAGS,
    ADMISSION_TYPE,
    ALLERGEN_TYPE,
    ALLERGY_SEVERITY,
    BED_STATUS,
    DIAGNOSIS_TYPE,
    DISCHARGE_DISPOSITION,
    PATIENT_CLASS,
    RESULT_STATUS,
    translate,
)
from .utils import (
    BIRTH_PLACE,
    BIRTH_PLACE_LEGACY,
    CITIZENSHIP,
    IDENTIFIER_STATE,
    MOTHERS_MAIDEN_NAME,
    RELIGION,
    UCUM,
    US_CORE_ETHNICITY,
    US_CORE_RACE,
    as_list,
    dig,
    extension_code,
    fhir_datetime_to_hl7,
    find_extension,
    find_telecom,
    has_type_code,
    hl7_address,
    hl7_coded,
    hl7_identifier,
    hl7_marital_status,
    hl7_name,
    hl7_number,
    hl7_sex,
    hl7_yes_no,
    omb_category_codes,
    system_contains,
    text,
    ts_hl7,
)

ENCODING_CHARACTERS = "^~\\&"

MSH_FIELDS = 19
EVN_FIELDS = 7
PID_FIELDS = 30
PV1_FIELDS = 50
NK1_FIELDS = 31
AL1_FIELDS = 6
DG1_FIELDS = 21
OBX_FIELDS = 17


def _segment(tag: str, size: int, values: Dict[int, str]) -> Segment:
    """Lay ``values`` (1-based field number -> value) into a segment of ``size`` fields."""
    seg = [tag] + [""] * size
    for idx, value in values.items():
        seg[idx] = value or ""
    return seg


def _is(resource: Any, resource_type: str) -> bool:
    return isinstance(resource, dict) and resource.get("resourceType") == resource_type


def _repeat(values: List[str]) -> str:
    return "~".join(v for v in values if v)


# ----------------
# Header
# ----------------

def msh(
    message_type: str,
    control_id: str,
    timestamp: datetime,
    options: Optional[ConversionOptions] = None,
) -> Segment:
    opts = options or ConversionOptions()
    # MSH-1 is the field separator itself, so the encoding characters sit in slot 1.
    return _segment("MSH", MSH_FIELDS, {
        1: ENCODING_CHARACTERS,
        2: opts.sending_application,
        3: opts.sending_facility,
        4: opts.receiving_application,
        5: opts.receiving_facility,
        6: ts_hl7(timestamp),
        8: message_type,
        9: control_id,
        10: opts.processing_id,
        11: opts.version_id,
    })


def evn(event_type: str, recorded: str, operator_id: str = "") -> Segment:
    return _segment("EVN", EVN_FIELDS, {1: event_type, 2: recorded, 5: operator_id})


# ----------------
# Providers
# ----------------

def find_practitioner(reference: Optional[str], practitioners: List[Resource]) -> Optional[Resource]:
    """Resolve a 'Practitioner/<id>' style reference against the supplied resources.

    An id equal to the segment after 'Practitioner' wins (so versioned
    'Practitioner/<id>/_history/<v>' references resolve to <id>); otherwise the
    first practitioner whose id appears anywhere in the reference. None if neither.
    """
    if not isinstance(reference, str) or not reference:
        return None
    candidates = [p for p in practitioners if _is(p, ResourceType.PRACTITIONER) and p.get("id")]
    ref_id = _reference_id(reference, ResourceType.PRACTITIONER)
    for p in candidates:
        if str(p["id"]) == ref_id:
            return p
    for p in candidates:
        if str(p["id"]) in reference:
            return p
    return None


def _reference_id(reference: str, resource_type: str) -> Optional[str]:
    """'<base>/Practitioner/123/_history/2' -> '123'; None without a type segment."""
    parts = reference.split("/")
    for i, part in enumerate(parts[:-1]):
        if part == resource_type:
            return parts[i + 1]
    return None


def hl7_practitioner(value: Any) -> str:
    """Practitioner -> XCN id^family^given^middle^suffix^prefix^degree^idtype^authority.

    Bare references could not be resolved and render as ''.
    """
    if not isinstance(value, dict) or value.get("reference"):
        return ""
    if value.get("resourceType") != ResourceType.PRACTITIONER:
        return ""
    name = dig(value, "name", 0)
    given = [text(g) for g in as_list(dig(name, "given"))]
    return "^".join([
        text(value.get("id")),
        text(dig(name, "family")),
        given[0] if given else "",
        " ".join(given[1:]),
        text(dig(name, "suffix", 0)),
        text(dig(name, "prefix", 0)),
        "",
        "",
        "",
    ])


def _resolve_actor(actor: Any, practitioners: List[Resource]) -> Any:
    """Resolved Practitioner for a Reference, else the Reference itself."""
    return find_practitioner(dig(actor, "reference"), practitioners) or actor


def _participants_with_role(encounter: Resource, role: str) -> List[Dict[str, Any]]:
    found = []
    for participant in as_list(encounter.get("participant")):
        if not isinstance(participant, dict):
            continue
        for concept in as_list(participant.get("type")):
            if any(dig(c, "code") == role for c in as_list(dig(concept, "coding"))):
                found.append(participant)
                break
    return found


def _doctors(encounter: Resource, role: str, practitioners: List[Resource], *, repeat: bool = False) -> str:
    participants = _participants_with_role(encounter, role)
    if not repeat:
        participants = participants[:1]
    rendered = [
        hl7_practitioner(_resolve_actor(p.get("individual") or p.get("actor"), practitioners))
        for p in participants
    ]
    return _repeat(rendered)


# ----------------
# PID
# ----------------

def _driver_license(patient: Resource) -> str:
    dl = next(
        (i for i in as_list(patient.get("identifier"))
         if has_type_code(i, "DL") or system_contains(i, "driver", "dl")),
        None,
    )
    if dl is None:
        return ""
    value = hl7_identifier(dl)
    state = text(dig(find_extension(dl.get("extension"), IDENTIFIER_STATE), "valueString"))
    expiration = fhir_datetime_to_hl7(dig(dl, "period", "end"))
    if state or expiration:
        return f"{value}^{state}^{expiration}"
    return value


def _first_identifier(patient: Resource, predicate) -> str:
    for ident in as_list(patient.get("identifier")):
        if isinstance(ident, dict) and predicate(ident):
            return hl7_identifier(ident)
    return ""


def pid(patient: Resource, now: datetime) -> Segment:
    """Patient -> PID. ``now`` stamps PID-29 when only deceasedBoolean is known."""
    if not _is(patient, ResourceType.PATIENT):
        raise InvalidRecordKind(dig(patient, "resourceType"))

    names = as_list(patient.get("name"))
    extensions = patient.get("extension")
    addresses = as_list(patient.get("address"))

    aliases = [n for n in names if dig(n, "use") in ("nickname", "usual")]
    preferred = next(
        (c for c in as_list(patient.get("communication")) if dig(c, "preferred")),
        None,
    )
    birth_place = dig(find_extension(extensions, BIRTH_PLACE) or find_extension(extensions, BIRTH_PLACE_LEGACY),
                      "valueAddress")

    multiple_birth = ""
    birth_order = ""
    mb_bool = patient.get("multipleBirthBoolean")
    mb_int = patient.get("multipleBirthInteger")
    has_order = isinstance(mb_int, int) and not isinstance(mb_int, bool) and mb_int > 0
    if isinstance(mb_bool, bool):
        multiple_birth = hl7_yes_no(mb_bool)
    elif has_order:
        multiple_birth = "Y"
    if has_order:
        birth_order = str(mb_int)

    deceased_dt = patient.get("deceasedDateTime")
    deceased_bool = patient.get("deceasedBoolean")
    death_date = ""
    if deceased_dt:
        death_date = fhir_datetime_to_hl7(deceased_dt)
    elif deceased_bool is True:
        death_date = ts_hl7(now)
    death_indicator = ""
    if isinstance(deceased_bool, bool):
        death_indicator = hl7_yes_no(deceased_bool)
    elif deceased_dt:
        death_indicator = "Y"

    return _segment("PID", PID_FIELDS, {
        1: "1",
        3: _repeat([hl7_identifier(i) for i in as_list(patient.get("identifier"))]),
        5: "~".join(hl7_name(n) for n in names),
        6: text(dig(find_extension(extensions, MOTHERS_MAIDEN_NAME), "valueString")),
        7: fhir_datetime_to_hl7(patient.get("birthDate")),
        8: hl7_sex(patient.get("gender")),
        9: "~".join(hl7_name(n) for n in aliases),
        10: omb_category_codes(extensions, US_CORE_RACE),
        11: "~".join(hl7_address(a) for a in addresses),
        12: text(dig(addresses, 0, "district")),
        13: find_telecom(patient.get("telecom"), "home", allow_missing_use=True),
        14: find_telecom(patient.get("telecom"), "work"),
        15: text(dig(preferred, "language", "coding", 0, "code")),
        16: hl7_marital_status(patient.get("maritalStatus")),
        17: extension_code(extensions, RELIGION),
        18: _first_identifier(patient, lambda i: has_type_code(i, "AN", display_contains="account")),
        19: _first_identifier(patient, lambda i: has_type_code(i, "SS") or system_contains(i, "ssn")),
        20: _driver_license(patient),
        22: omb_category_codes(extensions, US_CORE_ETHNICITY),
        23: hl7_address(birth_place),
        24: multiple_birth,
        25: birth_order,
        26: extension_code(extensions, CITIZENSHIP),
        29: death_date,
        30: death_indicator,
    })


# ----------------
# PV1
# ----------------

def encounter_class_code(encounter: Any) -> Optional[str]:
    """R4 ``class`` is a Coding; R5 made it a list of CodeableConcepts."""
    cls = dig(encounter, "class")
    if isinstance(cls, dict):
        return cls.get("code")
    if isinstance(cls, list):
        return dig(cls, 0, "coding", 0, "code")
    return None


def _location(encounter: Resource) -> str:
    loc = dig(encounter, "location", 0, "location")
    return text(dig(loc, "display") or dig(loc, "identifier", "value"))


def _encounter_identifier(encounter: Resource, predicate) -> Optional[Dict[str, Any]]:
    return next(
        (i for i in as_list(encounter.get("identifier")) if isinstance(i, dict) and predicate(i)),
        None,
    )


def pv1(encounter: Resource, practitioners: Optional[List[Resource]] = None) -> Optional[Segment]:
    if not _is(encounter, ResourceType.ENCOUNTER):
        return None
    practitioners = practitioners or []
    hosp = encounter.get("hospitalization") or encounter.get("admission")
    admit_source = dig(hosp, "admitSource", "coding", 0, "code")

    patient_class = translate(PATIENT_CLASS, encounter_class_code(encounter), "I")

    preadmit = _encounter_identifier(
        encounter, lambda i: has_type_code(i, "VN", display_contains="preadmit"))
    visit = _encounter_identifier(
        encounter, lambda i: has_type_code(i, "VN", display_contains="visit"))
    alternate = _encounter_identifier(
        encounter, lambda i: i.get("use") == "secondary" or has_type_code(i, "VN"))

    return _segment("PV1", PV1_FIELDS, {
        1: "1",
        2: patient_class,
        3: _location(encounter),
        4: translate(ADMISSION_TYPE, admit_source),
        5: text(dig(preadmit, "value")),
        6: text(dig(hosp, "preAdmissionIdentifier", "value")),
        7: _doctors(encounter, "ATND", practitioners),
        8: _doctors(encounter, "REF", practitioners),
        9: _doctors(encounter, "CON", practitioners, repeat=True),
        10: text(dig(encounter, "type", 0, "coding", 0, "code")),
        13: text(dig(hosp, "reAdmission", "coding", 0, "code")),
        14: text(admit_source),
        17: _doctors(encounter, "ADM", practitioners),
        19: hl7_identifier(visit),
        20: text(dig(encounter, "classHistory", 0, "class", "code")),
        36: translate(DISCHARGE_DISPOSITION, dig(hosp, "dischargeDisposition", "coding", 0, "code"),
                      passthrough=True),
        40: translate(BED_STATUS, dig(encounter, "location", 0, "status")),
        44: fhir_datetime_to_hl7(dig(encounter, "period", "start")),
        45: fhir_datetime_to_hl7(dig(encounter, "period", "end")),
        50: hl7_identifier(alternate),
    })


# ----------------
# Repeatable segments
# ----------------

def nk1(related_person: Resource, set_id: int = 1) -> Optional[Segment]:
    if not _is(related_person, ResourceType.RELATED_PERSON):
        return None
    telecom = related_person.get("telecom")
    return _segment("NK1", NK1_FIELDS, {
        1: str(set_id),
        2: "~".join(hl7_name(n) for n in as_list(related_person.get("name"))),
        3: hl7_coded(dig(related_person, "relationship", 0), require_coding=False),
        4: "~".join(hl7_address(a) for a in as_list(related_person.get("address"))),
        5: find_telecom(telecom, "home", allow_missing_use=True),
        6: find_telecom(telecom, "work"),
        8: fhir_datetime_to_hl7(dig(related_person, "period", "start")),
        9: fhir_datetime_to_hl7(dig(related_person, "period", "end")),
    })


def _reaction(reaction: Any) -> str:
    manifestation = dig(reaction, "manifestation", 0)
    if manifestation is None:
        return ""
    # R5 wraps the concept in a CodeableReference.
    concept = manifestation.get("concept", manifestation) if isinstance(manifestation, dict) else None
    code = text(dig(concept, "coding", 0, "code"))
    display = text(dig(concept, "coding", 0, "display") or dig(concept, "text"))
    return f"{code}^{display}"


def al1(allergy: Resource, set_id: int = 1) -> Optional[Segment]:
    if not _is(allergy, ResourceType.ALLERGY_INTOLERANCE):
        return None
    allergy_type = allergy.get("type") or "allergy"
    if isinstance(allergy_type, dict):
        allergy_type = dig(allergy_type, "coding", 0, "code") or "allergy"
    return _segment("AL1", AL1_FIELDS, {
        1: str(set_id),
        2: translate(ALLERGEN_TYPE, allergy_type, "MA"),
        3: hl7_coded(allergy.get("code")),
        4: translate(ALLERGY_SEVERITY, dig(allergy, "reaction", 0, "severity")),
        5: _repeat([_reaction(r) for r in as_list(allergy.get("reaction"))]),
        6: fhir_datetime_to_hl7(allergy.get("onsetDateTime") or allergy.get("recordedDate")),
    })


def dg1(condition: Resource, set_id: int = 1, practitioners: Optional[List[Resource]] = None) -> Optional[Segment]:
    if not _is(condition, ResourceType.CONDITION):
        return None
    category = dig(condition, "category", 0, "coding", 0, "code")
    return _segment("DG1", DG1_FIELDS, {
        1: str(set_id),
        3: hl7_coded(condition.get("code")),
        4: text(dig(condition, "code", "text")),
        5: fhir_datetime_to_hl7(condition.get("onsetDateTime") or condition.get("recordedDate")),
        6: translate(DIAGNOSIS_TYPE, category, "F"),
        16: hl7_practitioner(_resolve_actor(condition.get("asserter"), practitioners or [])),
    })


def _populated(value: Any) -> bool:
    return isinstance(value, dict) or bool(value)


def observation_value(observation: Resource) -> tuple[str, str]:
    """(OBX-2 value type, OBX-5 value), first populated value[x] wins.

    Priority: Quantity, CodeableConcept, DateTime/Date, Time, String, Boolean.
    A complex value counts as populated even when it is an empty object.
    """
    if _populated(observation.get("valueQuantity")):
        return "NM", hl7_number(dig(observation, "valueQuantity", "value"))
    if _populated(observation.get("valueCodeableConcept")):
        concept = observation["valueCodeableConcept"]
        return "CE", text(dig(concept, "coding", 0, "code") or dig(concept, "text"))
    if observation.get("valueDateTime"):
        return "DT", fhir_datetime_to_hl7(observation["valueDateTime"])
    if observation.get("valueDate"):
        return "DT", fhir_datetime_to_hl7(observation["valueDate"])
    if observation.get("valueTime"):
        return "TM", text(observation["valueTime"])
    if observation.get("valueString"):
        return "ST", text(observation["valueString"])
    if isinstance(observation.get("valueBoolean"), bool):
        return "ST", hl7_yes_no(observation["valueBoolean"])
    return "ST", ""


def _units(observation: Resource) -> str:
    quantity = observation.get("valueQuantity")
    unit = text(dig(quantity, "unit"))
    if not unit:
        return ""
    system = text(dig(quantity, "system") or UCUM)
    return f"{unit}^{unit}^{system}^{text(dig(quantity, 'code'))}"


def obx(observation: Resource, set_id: int = 1) -> Optional[Segment]:
    if not _is(observation, ResourceType.OBSERVATION):
        return None
    value_type, value = observation_value(observation)
    effective = observation.get("effectiveDateTime") or dig(observation, "effectivePeriod", "start")
    return _segment("OBX", OBX_FIELDS, {
        1: str(set_id),
        2: value_type,
        3: hl7_coded(observation.get("code")),
        5: value,
        6: _units(observation),
        8: translate(ABNORMAL_FLAGS, dig(observation, "interpretation", 0, "coding", 0, "code")),
        11: translate(RESULT_STATUS, observation.get("status"), "F"),
        # Receivers read the observation time from OBX-12, not OBX-14.
        12: fhir_datetime_to_hl7(effective),
    })
