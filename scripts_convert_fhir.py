#!/usr/bin/env python3
"""Demo runner: prints the HL7 messages for the built-in samples.

Run:
  python scripts_convert_fhir.py
"""

from __future__ import annotations

import json
import os
import sys

# Ensure repo root is on sys.path so `fhir2hl7` is importable without installing
ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fhir2hl7 import convert_fhir_to_hl7, validate_fhir_resource
from fhir2hl7.samples import sample_bundle, sample_patient


def _show(message: str) -> None:
    print(message.replace("\r", "\n"))


if __name__ == "__main__":
    print("=== Example 1: Sample FHIR Patient ===\n")
    patient = sample_patient()
    print(json.dumps(patient, indent=2)[:500] + "...\n")
    if validate_fhir_resource(patient):
        _show(convert_fhir_to_hl7(patient))
    else:
        print("Invalid FHIR resource", file=sys.stderr)

    print("\n=== Example 2: Sample FHIR Bundle ===\n")
    bundle = sample_bundle()
    print(f"  Type: {bundle['type']}")
    print(f"  Total Resources: {len(bundle['entry'])}")
    for i, entry in enumerate(bundle["entry"], start=1):
        print(f"  {i}. {entry['resource']['resourceType']} ({entry['resource']['id']})")
    print()
    message = convert_fhir_to_hl7(bundle)
    _show(message)
    print("\nSegments:")
    for i, segment in enumerate(message.split("\r"), start=1):
        print(f"  {i}. {segment.split('|')[0]}")

    print("\n=== Example 3: Custom Patient with Options ===\n")
    custom = {
        "resourceType": "Patient",
        "id": "patient-1",
        "identifier": [{
            "system": "http://hospital.org/mrn",
            "value": "MRN999888777",
            "type": {"coding": [{"system": "http://terminology.hl7.org/CodeSystem/v2-0203", "code": "MR"}]},
        }],
        "name": [{"use": "official", "family": "SMITH", "given": ["JANE", "MARIE"], "suffix": ["MD"]}],
        "gender": "female",
        "birthDate": "1990-05-20",
        "address": [{"use": "home", "line": ["456 OAK AVENUE"], "city": "SPRINGFIELD", "state": "IL",
                     "postalCode": "62701", "country": "USA"}],
    }
    _show(convert_fhir_to_hl7(custom, {
        "sendingApplication": "MY-EHR",
        "sendingFacility": "MY-HOSPITAL",
        "receivingApplication": "LAB-SYSTEM",
        "receivingFacility": "LAB-FACILITY",
        "processingId": "T",
    }))
