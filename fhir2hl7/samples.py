"""Fixed sample FHIR resources used by the demo runner and tests."""

from __future__ import annotations

import copy
from typing import Any, Dict

V2_0203 = "http://terminology.hl7.org/CodeSystem/v2-0203"

_PATIENT: Dict[str, Any] = {
    "resourceType": "Patient",
    "id": "patient-1",
    "meta": {"profile": ["http://hl7.org/fhir/us/core/StructureDefinition/us-core-patient"]},
    "identifier": [
        {
            "use": "usual",
            "type": {"coding": [{"system": V2_0203, "code": "MR", "display": "Medical Record Number"}]},
            "system": "http://hospital.org/mrn",
            "value": "MRN123456789",
        },
        {
            "use": "official",
            "type": {"coding": [{"system": V2_0203, "code": "SS", "display": "Social Security Number"}]},
            "system": "http://hl7.org/fhir/sid/us-ssn",
            "value": "123-45-6789",
        },
    ],
    "name": [{"use": "official", "family": "DOE", "given": ["JOHN", "MIDDLE"], "suffix": ["JR"], "prefix": ["MR"]}],
    "telecom": [
        {"system": "phone", "value": "555-123-4567", "use": "home"},
        {"system": "phone", "value": "555-987-6543", "use": "work"},
    ],
    "gender": "male",
    "birthDate": "1980-01-15",
    "address": [
        {"use": "home", "line": ["123 MAIN ST"], "city": "CITY", "state": "ST", "postalCode": "12345", "country": "USA"},
    ],
}

_OMB = "urn:oid:2.16.840.1.113883.6.238"

_BUNDLE_PATIENT_EXTRAS: Dict[str, Any] = {
    "extension": [
        {
            "url": "http://hl7.org/fhir/us/core/StructureDefinition/us-core-race",
            "extension": [{"url": "ombCategory", "valueCoding": {"system": _OMB, "code": "2106-3", "display": "White"}}],
        },
        {
            "url": "http://hl7.org/fhir/us/core/StructureDefinition/us-core-ethnicity",
            "extension": [
                {"url": "ombCategory",
                 "valueCoding": {"system": _OMB, "code": "2186-5", "display": "Not Hispanic or Latino"}},
            ],
        },
    ],
    "maritalStatus": {
        "coding": [{"system": "http://terminology.hl7.org/CodeSystem/v3-MaritalStatus", "code": "M", "display": "Married"}],
    },
}

_ENCOUNTER: Dict[str, Any] = {
    "resourceType": "Encounter",
    "id": "encounter-1",
    "status": "in-progress",
    "class": {"system": "http://terminology.hl7.org/CodeSystem/v3-ActCode", "code": "IMP", "display": "inpatient encounter"},
    "subject": {"reference": "Patient/patient-1"},
    "period": {"start": "2024-01-01T10:00:00"},
    "location": [{"location": {"display": "ICU^101^A"}, "status": "active"}],
    "hospitalization": {
        "admitSource": {
            "coding": [{"system": "http://terminology.hl7.org/CodeSystem/admit-source", "code": "emd",
                        "display": "Emergency Department"}],
        },
    },
    "identifier": [
        {"type": {"coding": [{"system": V2_0203, "code": "VN", "display": "Visit Number"}]}, "value": "VN123456789"},
    ],
}

_RELATED_PERSON: Dict[str, Any] = {
    "resourceType": "RelatedPerson",
    "id": "relatedperson-1",
    "patient": {"reference": "Patient/patient-1"},
    "relationship": [
        {"coding": [{"system": "http://terminology.hl7.org/CodeSystem/v3-RoleCode", "code": "WIFE", "display": "wife"}]},
    ],
    "name": [{"family": "DOE", "given": ["JANE"]}],
    "telecom": [{"system": "phone", "value": "555-111-2222", "use": "home"}],
    "address": [
        {"use": "home", "line": ["123 MAIN ST"], "city": "CITY", "state": "ST", "postalCode": "12345", "country": "USA"},
    ],
}

_OBSERVATION: Dict[str, Any] = {
    "resourceType": "Observation",
    "id": "observation-1",
    "status": "final",
    "subject": {"reference": "Patient/patient-1"},
    "encounter": {"reference": "Encounter/encounter-1"},
    "code": {"coding": [{"system": "http://loinc.org", "code": "8867-4", "display": "Heart rate"}]},
    "valueQuantity": {"value": 72, "unit": "/min", "system": "http://unitsofmeasure.org", "code": "/min"},
    "effectiveDateTime": "2024-01-01T10:30:00",
}

_ALLERGY: Dict[str, Any] = {
    "resourceType": "AllergyIntolerance",
    "id": "allergy-1",
    "patient": {"reference": "Patient/patient-1"},
    "type": "allergy",
    "category": ["medication"],
    "code": {"coding": [{"system": "http://www.nlm.nih.gov/research/umls/rxnorm", "code": "7980", "display": "Penicillin"}]},
    "reaction": [
        {
            "severity": "severe",
            "manifestation": [
                {"coding": [{"system": "http://snomed.info/sct", "code": "39579001", "display": "Anaphylaxis"}]},
            ],
        },
    ],
    "recordedDate": "2020-01-15",
}

_CONDITION: Dict[str, Any] = {
    "resourceType": "Condition",
    "id": "condition-1",
    "subject": {"reference": "Patient/patient-1"},
    "encounter": {"reference": "Encounter/encounter-1"},
    "category": [
        {"coding": [{"system": "http://terminology.hl7.org/CodeSystem/condition-category", "code": "encounter-diagnosis",
                     "display": "Encounter Diagnosis"}]},
    ],
    "code": {"coding": [{"system": "http://hl7.org/fhir/sid/icd-10-cm", "code": "I10",
                         "display": "Essential (primary) hypertension"}]},
    "onsetDateTime": "2023-06-01",
}


def sample_patient() -> Dict[str, Any]:
    """A US Core style Patient with MRN and SSN identifiers."""
    return copy.deepcopy(_PATIENT)


def sample_bundle() -> Dict[str, Any]:
    """A collection Bundle: Patient, in-progress Encounter, RelatedPerson,
    Observation, AllergyIntolerance and Condition."""
    patient = sample_patient()
    patient.update(copy.deepcopy(_BUNDLE_PATIENT_EXTRAS))
    resources = [patient] + [
        copy.deepcopy(r) for r in (_ENCOUNTER, _RELATED_PERSON, _OBSERVATION, _ALLERGY, _CONDITION)
    ]
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"fullUrl": f"urn:uuid:{r['id']}", "resource": r} for r in resources],
    }
