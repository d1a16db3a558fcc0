"""Tests for the resource shape check."""

import pytest

from fhir2hl7 import validate_fhir_resource


@pytest.mark.parametrize(
    "resource,expected",
    [
        ({"resourceType": "Patient"}, True),
        ({"resourceType": "Bundle", "entry": []}, True),
        ({"resourceType": ""}, False),
        ({"resourceType": 7}, False),
        ({"id": "x"}, False),
        (None, False),
        ("Patient", False),
        ([{"resourceType": "Patient"}], False),
    ],
)
def test_validate_fhir_resource(resource, expected):
    assert validate_fhir_resource(resource) is expected
