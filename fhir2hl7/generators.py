"""Synthetic FHIR generators (Patient / Encounter / Observation / ... Bundle)."""

from __future__ import annotations

import random
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from faker import Faker

from .samples import V2_0203

fake = Faker()

ZIP_POOL = [
    ("02139", "Cambridge", "MA"),
    ("02138", "Cambridge", "MA"),
    ("10001", "New York", "NY"),
    ("19104", "Philadelphia", "PA"),
    ("60611", "Chicago", "IL"),
    ("94103", "San Francisco", "CA"),
]

ICD_POOL = [
    ("R07.9", "Chest pain, unspecified"),
    ("I10", "Essential (primary) hypertension"),
    ("M54.2", "Cervicalgia"),
]

ALLERGEN_POOL = [
    ("7980", "Penicillin", "http://www.nlm.nih.gov/research/umls/rxnorm"),
    ("1191", "Aspirin", "http://www.nlm.nih.gov/research/umls/rxnorm"),
    ("256349002", "Peanut", "http://snomed.info/sct"),
]

# LOINC code, display, unit, low, high
VITALS_POOL = [
    ("8867-4", "Heart rate", "/min", 55, 110),
    ("8480-6", "Systolic blood pressure", "mm[Hg]", 95, 160),
    ("59408-5", "Oxygen saturation", "%", 88, 100),
]

ENCOUNTER_STATUSES = ["planned", "arrived", "in-progress", "finished", "cancelled", "onleave"]
ENCOUNTER_CLASSES = ["IMP", "AMB", "EMER"]


def _ref(resource: Dict[str, Any]) -> Dict[str, str]:
    return {"reference": f"{resource['resourceType']}/{resource['id']}"}


def gen_patient() -> Dict[str, Any]:
    zip_code, city, state = random.choice(ZIP_POOL)
    gender = random.choice(["male", "female"])
    name_parts = (fake.name_female() if gender == "female" else fake.name_male()).split()
    first, last = name_parts[0], name_parts[-1]
    return {
        "resourceType": "Patient",
        "id": str(uuid.UUID(int=random.getrandbits(128))),
        "meta": {"lastUpdated": fake.date_time_between(start_date="-30d").strftime("%Y-%m-%dT%H:%M:%S")},
        "identifier": [
            {
                "type": {"coding": [{"system": V2_0203, "code": "MR"}]},
                "system": "http://hospital.example.org/mrn",
                "value": fake.unique.bothify("MRN#######"),
            },
            {"system": "http://hl7.org/fhir/sid/us-ssn", "value": fake.ssn()},
        ],
        "name": [{"use": "official", "family": last.upper(), "given": [first.upper()]}],
        "telecom": [{"system": "phone", "value": fake.numerify("###-###-####"), "use": "home"}],
        "gender": gender,
        "birthDate": fake.date_of_birth(minimum_age=18, maximum_age=90).isoformat(),
        "address": [{
            "use": "home",
            "line": [fake.street_address()],
            "city": city,
            "state": state,
            "postalCode": zip_code,
            "country": "USA",
        }],
    }


def gen_practitioner() -> Dict[str, Any]:
    first, last = fake.first_name(), fake.last_name()
    return {
        "resourceType": "Practitioner",
        "id": fake.bothify("P######"),
        "name": [{"family": last.upper(), "given": [first.upper()], "prefix": ["DR"]}],
    }


def gen_encounter(patient: Dict[str, Any], attending: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    admit_dt = fake.date_time_between(start_date="-14d", end_date="-1d")
    status = random.choice(ENCOUNTER_STATUSES)
    period = {"start": admit_dt.strftime("%Y-%m-%dT%H:%M:%S")}
    if status in ("finished", "cancelled"):
        period["end"] = (admit_dt + timedelta(hours=random.randint(1, 72))).strftime("%Y-%m-%dT%H:%M:%S")
    encounter: Dict[str, Any] = {
        "resourceType": "Encounter",
        "id": str(uuid.UUID(int=random.getrandbits(128))),
        "status": status,
        "class": {"system": "http://terminology.hl7.org/CodeSystem/v3-ActCode", "code": random.choice(ENCOUNTER_CLASSES)},
        "subject": _ref(patient),
        "period": period,
        "identifier": [{
            "type": {"coding": [{"system": V2_0203, "code": "VN", "display": "Visit Number"}]},
            "value": fake.unique.bothify("VN##########"),
        }],
        "location": [{"location": {"display": f"WARD{random.randint(1, 9)}^{random.randint(100, 499)}^A"},
                      "status": "active"}],
    }
    if attending:
        encounter["participant"] = [{
            "type": [{"coding": [{"system": "http://terminology.hl7.org/CodeSystem/v3-ParticipationType",
                                  "code": "ATND"}]}],
            "individual": _ref(attending),
        }]
    return encounter


def gen_observation(patient: Dict[str, Any], encounter: Dict[str, Any]) -> Dict[str, Any]:
    code, display, unit, lo, hi = random.choice(VITALS_POOL)
    return {
        "resourceType": "Observation",
        "id": str(uuid.UUID(int=random.getrandbits(128))),
        "status": "final",
        "subject": _ref(patient),
        "encounter": _ref(encounter),
        "code": {"coding": [{"system": "http://loinc.org", "code": code, "display": display}]},
        "valueQuantity": {"value": random.randint(lo, hi), "unit": unit, "system": "http://unitsofmeasure.org",
                          "code": unit},
        "effectiveDateTime": encounter["period"]["start"],
    }


def gen_condition(patient: Dict[str, Any]) -> Dict[str, Any]:
    code, display = random.choice(ICD_POOL)
    return {
        "resourceType": "Condition",
        "id": str(uuid.UUID(int=random.getrandbits(128))),
        "subject": _ref(patient),
        "category": [{"coding": [{"code": random.choice(["encounter-diagnosis", "problem-list-item"])}]}],
        "code": {"coding": [{"system": "http://hl7.org/fhir/sid/icd-10-cm", "code": code, "display": display}]},
        "onsetDateTime": fake.date_between(start_date="-5y").isoformat(),
    }


def gen_allergy(patient: Dict[str, Any]) -> Dict[str, Any]:
    code, display, system = random.choice(ALLERGEN_POOL)
    return {
        "resourceType": "AllergyIntolerance",
        "id": str(uuid.UUID(int=random.getrandbits(128))),
        "patient": _ref(patient),
        "type": random.choice(["allergy", "intolerance"]),
        "code": {"coding": [{"system": system, "code": code, "display": display}]},
        "reaction": [{"severity": random.choice(["mild", "moderate", "severe"])}],
        "recordedDate": fake.date_between(start_date="-10y").isoformat(),
    }


def gen_bundle(*, n_observations: int = 2, include_encounter: bool = True) -> Dict[str, Any]:
    """One synthetic patient with optional Encounter, a Condition, an allergy and vitals."""
    patient = gen_patient()
    resources: List[Dict[str, Any]] = [patient]
    if include_encounter:
        attending = gen_practitioner()
        encounter = gen_encounter(patient, attending)
        resources.extend([encounter, attending])
        resources.extend(gen_observation(patient, encounter) for _ in range(n_observations))
    resources.append(gen_condition(patient))
    resources.append(gen_allergy(patient))
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"fullUrl": f"urn:uuid:{r['id']}", "resource": r} for r in resources],
    }


def seed_all(seed: Optional[int]) -> None:
    if seed is not None:
        random.seed(seed)
        Faker.seed(seed)
