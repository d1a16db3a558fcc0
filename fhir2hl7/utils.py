"""Field extractors and small helpers for HL7 building.

Every extractor takes an optional FHIR value and returns its flat HL7 string,
or '' when the value (or a required part of it) is missing.
"""

from __future__ import annotations

import random
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from .tables import ADMINISTRATIVE_SEX, MARITAL_STATUS, translate

_TIME_RE = re.compile(r"(\d{2}):(\d{2}):(\d{2})")
_SCHEME_RE = re.compile(r"^https?://")

US_CORE_RACE = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-race"
US_CORE_ETHNICITY = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-ethnicity"
MOTHERS_MAIDEN_NAME = "http://hl7.org/fhir/StructureDefinition/patient-mothersMaidenName"
RELIGION = "http://hl7.org/fhir/StructureDefinition/patient-religion"
BIRTH_PLACE = "http://hl7.org/fhir/StructureDefinition/patient-birthPlace"
BIRTH_PLACE_LEGACY = "http://hl7.org/fhir/StructureDefinition/birthPlace"
CITIZENSHIP = "http://hl7.org/fhir/StructureDefinition/patient-citizenship"
IDENTIFIER_STATE = "http://hl7.org/fhir/StructureDefinition/identifier-state"
UCUM = "http://unitsofmeasure.org"


# ----------------
# Navigation
# ----------------

def dig(obj: Any, *path: Any) -> Any:
    """Walk dict keys / list indexes; None as soon as a step is missing."""
    cur = obj
    for step in path:
        if isinstance(step, int):
            if not isinstance(cur, list) or not -len(cur) <= step < len(cur):
                return None
            cur = cur[step]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(step)
        if cur is None:
            return None
    return cur


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def text(value: Any) -> str:
    """Render a scalar as a field value; None -> ''."""
    if value is None:
        return ""
    return str(value)


def find_extension(extensions: Any, url: str) -> Optional[Dict[str, Any]]:
    for ext in as_list(extensions):
        if isinstance(ext, dict) and ext.get("url") == url:
            return ext
    return None


def extension_code(extensions: Any, url: str) -> str:
    """First coding code of a CodeableConcept-valued extension."""
    return text(dig(find_extension(extensions, url), "valueCodeableConcept", "coding", 0, "code"))


def omb_category_codes(extensions: Any, url: str) -> str:
    """US Core race/ethnicity: the ombCategory codes, '~' repeated."""
    ext = find_extension(extensions, url)
    if not ext:
        return ""
    codes = [
        text(dig(sub, "valueCoding", "code"))
        for sub in as_list(ext.get("extension"))
        if isinstance(sub, dict) and sub.get("url") == "ombCategory"
    ]
    return "~".join(c for c in codes if c)


def find_telecom(telecom: Any, use: str, *, allow_missing_use: bool = False) -> str:
    """Value of the first phone ContactPoint with the given use."""
    for cp in as_list(telecom):
        if not isinstance(cp, dict) or cp.get("system") != "phone":
            continue
        if cp.get("use") == use or (allow_missing_use and not cp.get("use")):
            return text(cp.get("value"))
    return ""


def has_type_code(identifier: Any, *codes: str, display_contains: Optional[str] = None) -> bool:
    """True when an Identifier's type carries one of ``codes`` (or a matching display)."""
    for coding in as_list(dig(identifier, "type", "coding")):
        if not isinstance(coding, dict):
            continue
        if coding.get("code") in codes:
            return True
        display = coding.get("display")
        if display_contains and isinstance(display, str) and display_contains in display.lower():
            return True
    return False


def system_contains(identifier: Any, *needles: str) -> bool:
    system = dig(identifier, "system")
    return isinstance(system, str) and any(n in system for n in needles)


# ----------------
# Extractors
# ----------------

def fhir_datetime_to_hl7(value: Optional[str]) -> str:
    """FHIR date/dateTime -> HL7 TS.

    '1980-01-15' -> '19800115'; '2024-01-01T10:00:00+02:00' -> '20240101100000'.
    Partial dates and blanks -> ''.
    """
    if not isinstance(value, str) or not value.strip():
        return ""
    value = value.strip()
    date_part, _, time_part = value.partition("T")
    parts = date_part.split("-")
    if len(parts) < 3:
        return ""
    year, month, day = parts[0], parts[1] or "01", parts[2] or "01"
    out = f"{year}{month}{day}"
    if time_part:
        m = _TIME_RE.search(time_part)
        if m:
            out += "".join(m.groups())
    return out


def hl7_name(name: Any) -> str:
    """HumanName -> XPN family^given^middle^suffix^prefix^degree."""
    if not isinstance(name, dict):
        return ""
    given = [text(g) for g in as_list(name.get("given"))]
    suffix = as_list(name.get("suffix"))
    prefix = as_list(name.get("prefix"))
    parts = [
        text(name.get("family")),
        given[0] if given else "",
        " ".join(given[1:]),
        text(suffix[0]) if suffix else "",
        text(prefix[0]) if prefix else "",
        "",
    ]
    return "^".join(parts)


def hl7_address(address: Any) -> str:
    """Address -> XAD street^city^state^zip^country."""
    if not isinstance(address, dict):
        return ""
    lines = " ".join(text(ln) for ln in as_list(address.get("line")))
    return "^".join([
        lines,
        text(address.get("city")),
        text(address.get("state")),
        text(address.get("postalCode")),
        text(address.get("country")),
    ])


def assigning_authority(system: Any) -> str:
    """Last path segment of an identifier system URI."""
    if not isinstance(system, str) or not system:
        return ""
    last = system.rstrip("/").split("/")[-1]
    return _SCHEME_RE.sub("", last)


def identifier_type_code(identifier: Dict[str, Any]) -> str:
    codings = as_list(dig(identifier, "type", "coding"))
    if codings:
        return text(dig(codings, 0, "code"))
    system = identifier.get("system")
    if not isinstance(system, str):
        return ""
    if "ssn" in system:
        return "SS"
    if "mrn" in system or "medical-record" in system:
        return "MR"
    if "driver" in system or "dl" in system:
        return "DL"
    return ""


def hl7_identifier(identifier: Any) -> str:
    """Identifier -> CX id^check^scheme^authority^type^facility."""
    if not isinstance(identifier, dict) or not identifier.get("value"):
        return ""
    return "^".join([
        text(identifier.get("value")),
        "",
        "",
        assigning_authority(identifier.get("system")),
        identifier_type_code(identifier),
        "",
    ])


def hl7_coded(concept: Any, *, require_coding: bool = True) -> str:
    """CodeableConcept -> CE code^text^system (first coding only)."""
    if not isinstance(concept, dict):
        return ""
    coding = dig(concept, "coding", 0)
    if coding is None and require_coding:
        return ""
    return "^".join([
        text(dig(coding, "code")),
        text(dig(coding, "display") or concept.get("text")),
        text(dig(coding, "system")),
    ])


def hl7_sex(gender: Any) -> str:
    if not isinstance(gender, str) or not gender:
        return "U"
    return translate(ADMINISTRATIVE_SEX, gender.lower(), "U")


def hl7_marital_status(concept: Any) -> str:
    if not as_list(dig(concept, "coding")):
        return ""
    return translate(MARITAL_STATUS, dig(concept, "coding", 0, "code"), passthrough=True)


def hl7_number(value: Any) -> str:
    """Numeric value as written by a JSON serializer: 72.0 -> '72'."""
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def hl7_yes_no(flag: bool) -> str:
    return "Y" if flag else "N"


# ----------------
# Clock / control ids
# ----------------

def ts_hl7(dt: datetime) -> str:
    """datetime -> YYYYMMDDHHMMSS."""
    return dt.strftime("%Y%m%d%H%M%S")


def default_control_id(now: datetime) -> str:
    """MSG + timestamp + random suffix in [0, 1000)."""
    return f"MSG{ts_hl7(now)}{random.randrange(1000)}"


class Clock:
    """Source of the generation time and message control ids.

    The defaults read the wall clock (UTC) and ``random``; pass your own
    callables to pin both for reproducible output.
    """

    def __init__(
        self,
        now: Optional[Callable[[], datetime]] = None,
        control_id: Optional[Callable[[datetime], str]] = None,
    ):
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._control_id = control_id or default_control_id

    def now(self) -> datetime:
        return self._now()

    def control_id(self, now: datetime) -> str:
        return self._control_id(now)


class FixedClock(Clock):
    """Clock that always reports the same instant and control id."""

    def __init__(self, now: datetime, control_id: str = "MSG00000000000000"):
        super().__init__(now=lambda: now, control_id=lambda _now: control_id)


def join_segments(segments: Iterable[List[str]]) -> str:
    """Fields joined by '|', segments by '\\r'."""
    return "\r".join("|".join(seg) for seg in segments)


def safe_for_filename(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_\-]", "_", value or "")
