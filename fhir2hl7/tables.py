"""FHIR -> HL7 v2 code translation tables.

Each table is a closed mapping. Lookups go through ``translate`` so the
default branch for an unmapped code is explicit at every call site.
"""

from __future__ import annotations

from typing import Dict, Optional

from .models import MessageType

# FHIR administrative-gender -> HL7 0001
ADMINISTRATIVE_SEX: Dict[str, str] = {
    "male": "M",
    "female": "F",
    "other": "O",
    "unknown": "U",
}

# v3 MaritalStatus -> HL7 0002
MARITAL_STATUS: Dict[str, str] = {
    "A": "A",
    "D": "D",
    "I": "I",
    "L": "L",
    "M": "M",
    "P": "P",
    "S": "S",
    "T": "T",
    "W": "W",
    "UNK": "U",
}

# v3 ActCode encounter class -> HL7 0004 patient class
PATIENT_CLASS: Dict[str, str] = {
    "IMP": "I",
    "AMB": "O",
    "EMER": "E",
    "PRENC": "P",
    "OBSENC": "O",
    "NONAC": "N",
    "SS": "S",
}

# admit-source -> HL7 0007 admission type
ADMISSION_TYPE: Dict[str, str] = {
    "hosp-trans": "TR",
    "emd": "E",
    "outp": "O",
    "born": "NB",
    "gp": "GP",
}

# discharge-disposition -> HL7 0112
DISCHARGE_DISPOSITION: Dict[str, str] = {
    "home": "01",
    "alt-home": "01",
    "hosp": "02",
    "snf": "03",
    "other-hcf": "05",
    "long": "05",
    "aadvice": "07",
    "exp": "20",
    "rehab": "62",
    "psy": "65",
}

# Encounter.location.status -> HL7 0116 bed status
BED_STATUS: Dict[str, str] = {
    "active": "O",
    "reserved": "R",
    "inactive": "C",
}

# AllergyIntolerance.type -> HL7 0127 allergen type
ALLERGEN_TYPE: Dict[str, str] = {
    "allergy": "DA",
    "intolerance": "FA",
    "environment": "EA",
    "biologic": "MA",
}

# reaction severity -> HL7 0128
ALLERGY_SEVERITY: Dict[str, str] = {
    "mild": "MI",
    "moderate": "MO",
    "severe": "SV",
}

# condition-category -> HL7 0052 diagnosis type
DIAGNOSIS_TYPE: Dict[str, str] = {
    "encounter-diagnosis": "A",
    "problem-list-item": "F",
    "health-concern": "W",
}

# observation-status -> HL7 0085 result status
RESULT_STATUS: Dict[str, str] = {
    "registered": "I",
    "preliminary": "P",
    "final": "F",
    "amended": "C",
    "corrected": "C",
    "cancelled": "X",
    "entered-in-error": "E",
    "unknown": "U",
}

# v3 ObservationInterpretation -> HL7 0078 abnormal flags
ABNORMAL_FLAGS: Dict[str, str] = {
    "L": "L",
    "LL": "LL",
    "H": "H",
    "HH": "HH",
    "N": "N",
    "A": "A",
}

UPDATE = MessageType("ADT^A08", "A08")
REGISTER = MessageType("ADT^A04", "A04")
ADMIT = MessageType("ADT^A01", "A01")
DISCHARGE = MessageType("ADT^A03", "A03")
PENDING_ADMIT = MessageType("ADT^A14", "A14")

# Encounter.status -> ADT trigger
MESSAGE_TYPE_BY_STATUS: Dict[str, MessageType] = {
    "planned": REGISTER,
    "arrived": ADMIT,
    "in-progress": ADMIT,
    "finished": DISCHARGE,
    "cancelled": DISCHARGE,
    "onleave": PENDING_ADMIT,
}

INPATIENT_CLASS = "IMP"


def translate(table: Dict[str, str], code: Optional[str], default: str = "", *, passthrough: bool = False) -> str:
    """Look ``code`` up in ``table``.

    Unmapped codes yield ``default``, or the code itself when ``passthrough``
    is set and the code is non-empty.
    """
    if not isinstance(code, str):
        return default
    if code in table:
        return table[code]
    if passthrough and code:
        return code
    return default
