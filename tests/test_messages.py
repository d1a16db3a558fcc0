"""Tests for message-type resolution and message assembly."""

import logging
from datetime import datetime

import pytest

from fhir2hl7 import (
    FixedClock,
    MissingPrimarySubject,
    build_segments,
    convert_fhir_to_hl7,
    determine_message_type,
)
from fhir2hl7.messages import collect_resources
from fhir2hl7.samples import sample_bundle, sample_patient

NOW = datetime(2024, 1, 2, 3, 4, 5)


def clock():
    return FixedClock(NOW, "MSG1")


def segments(message):
    return [s.split("|") for s in message.split("\r")]


def tags(message):
    return [s[0] for s in segments(message)]


def observation(code, value):
    return {"resourceType": "Observation", "code": {"coding": [{"code": code}]}, "valueQuantity": {"value": value}}


class TestDetermineMessageType:
    @pytest.mark.parametrize(
        "status,expected",
        [
            ("planned", ("ADT^A04", "A04")),
            ("arrived", ("ADT^A01", "A01")),
            ("in-progress", ("ADT^A01", "A01")),
            ("finished", ("ADT^A03", "A03")),
            ("cancelled", ("ADT^A03", "A03")),
            ("onleave", ("ADT^A14", "A14")),
        ],
    )
    def test_status_table(self, status, expected):
        mt = determine_message_type({"resourceType": "Encounter", "status": status, "class": {"code": "AMB"}})
        assert (mt.message_type, mt.event_type) == expected

    def test_no_encounter_is_update(self):
        mt = determine_message_type(None)
        assert (mt.message_type, mt.event_type) == ("ADT^A08", "A08")

    def test_unknown_status_falls_back_to_class(self):
        assert determine_message_type({"status": "triaged", "class": {"code": "IMP"}}).event_type == "A01"
        assert determine_message_type({"status": "triaged", "class": {"code": "AMB"}}).event_type == "A08"
        assert determine_message_type({"status": "triaged"}).event_type == "A08"

    def test_status_beats_class(self):
        assert determine_message_type({"status": "finished", "class": {"code": "IMP"}}).event_type == "A03"


class TestCollectResources:
    def test_bundle_entries(self):
        resources = collect_resources(sample_bundle())
        assert [r["resourceType"] for r in resources] == [
            "Patient", "Encounter", "RelatedPerson", "Observation", "AllergyIntolerance", "Condition",
        ]

    def test_entries_without_resource_are_dropped(self):
        bundle = {"resourceType": "Bundle", "entry": [{"fullUrl": "x"}, {"resource": sample_patient()}, None]}
        assert len(collect_resources(bundle)) == 1

    def test_single_and_list(self):
        assert collect_resources(sample_patient())[0]["id"] == "patient-1"
        assert len(collect_resources([sample_patient(), None])) == 1

    def test_none_is_rejected(self):
        with pytest.raises(ValueError):
            collect_resources(None)


class TestScenarios:
    def test_patient_only(self):
        patient = {"resourceType": "Patient", "name": [{"family": "DOE", "given": ["JOHN", "MIDDLE"]}],
                   "gender": "male", "birthDate": "1980-01-15"}
        message = convert_fhir_to_hl7(patient, clock=clock())
        segs = segments(message)
        assert tags(message) == ["MSH", "EVN", "PID"]
        assert segs[0][8] == "ADT^A08"
        assert segs[2][5] == "DOE^JOHN^MIDDLE^^^"
        assert segs[2][8] == "M"
        assert segs[2][7] == "19800115"

    def test_in_progress_visit_is_admit(self):
        bundle = [sample_patient(), {"resourceType": "Encounter", "status": "in-progress"}]
        message = convert_fhir_to_hl7(bundle, clock=clock())
        segs = segments(message)
        assert tags(message) == ["MSH", "EVN", "PID", "PV1"]
        assert segs[0][8] == "ADT^A01"
        assert segs[1][1] == "A01"

    def test_missing_patient_fails(self):
        with pytest.raises(MissingPrimarySubject):
            convert_fhir_to_hl7([{"resourceType": "Encounter", "status": "in-progress"}])
        with pytest.raises(MissingPrimarySubject):
            convert_fhir_to_hl7({"resourceType": "Bundle", "type": "collection", "entry": []})
        with pytest.raises(MissingPrimarySubject):
            convert_fhir_to_hl7({"resourceType": "Bundle", "type": "collection"})


class TestAssembly:
    def test_segment_order_ignores_input_order(self):
        bundle = sample_bundle()
        resources = [e["resource"] for e in bundle["entry"]]
        message = convert_fhir_to_hl7(list(reversed(resources)), clock=clock())
        assert tags(message) == ["MSH", "EVN", "PID", "PV1", "NK1", "AL1", "DG1", "OBX"]

    def test_observations_numbered_in_input_order(self):
        resources = [observation("A", 1), sample_patient(), observation("B", 2), observation("C", 3)]
        obx = [s for s in segments(convert_fhir_to_hl7(resources, clock=clock())) if s[0] == "OBX"]
        assert len(obx) == 3
        assert [s[1] for s in obx] == ["1", "2", "3"]
        assert [s[3].split("^")[0] for s in obx] == ["A", "B", "C"]

    def test_each_group_numbered_independently(self):
        resources = [
            sample_patient(),
            {"resourceType": "Condition"},
            {"resourceType": "AllergyIntolerance"},
            {"resourceType": "Condition"},
            {"resourceType": "RelatedPerson"},
        ]
        segs = build_segments(resources, clock=clock())
        assert [(s[0], s[1]) for s in segs[3:]] == [("NK1", "1"), ("AL1", "1"), ("DG1", "1"), ("DG1", "2")]

    def test_idempotent_with_fixed_clock(self):
        first = convert_fhir_to_hl7(sample_bundle(), clock=clock())
        second = convert_fhir_to_hl7(sample_bundle(), clock=clock())
        assert first == second

    def test_sample_bundle_header(self):
        message = convert_fhir_to_hl7(sample_bundle(), clock=clock())
        msh, evn = message.split("\r")[:2]
        assert msh == (
            "MSH|^~\\&|FHIR-HYDRANT|FHIR-HYDRANT-FACILITY|RECEIVING-APP|RECEIVING-FACILITY|"
            "20240102030405||ADT^A01|MSG1|P|2.5" + "|" * 8
        )
        assert evn == "EVN|A01|20240101100000|||SendingUserID||"

    def test_input_not_mutated(self):
        bundle = sample_bundle()
        snapshot = repr(bundle)
        convert_fhir_to_hl7(bundle, clock=clock())
        assert repr(bundle) == snapshot

    def test_options_mapping(self):
        message = convert_fhir_to_hl7(sample_patient(), {
            "sendingApplication": "MY-EHR",
            "sendingFacility": "MY-HOSPITAL",
            "receivingApplication": "LAB",
            "receivingFacility": "LAB-FAC",
            "processingId": "T",
            "versionId": "2.3",
        }, clock=clock())
        msh = segments(message)[0]
        assert msh[2:6] == ["MY-EHR", "MY-HOSPITAL", "LAB", "LAB-FAC"]
        assert msh[10:12] == ["T", "2.3"]

    def test_default_clock_control_id(self):
        msh = segments(convert_fhir_to_hl7(sample_patient()))[0]
        assert msh[9].startswith("MSG")
        assert len(msh[6]) == 14


class TestRecordedTime:
    def test_from_encounter_start(self):
        message = convert_fhir_to_hl7(sample_bundle(), clock=clock())
        assert segments(message)[1][2] == "20240101100000"

    def test_from_patient_last_updated(self):
        patient = dict(sample_patient(), meta={"lastUpdated": "2023-05-06T07:08:09Z"})
        assert segments(convert_fhir_to_hl7(patient, clock=clock()))[1][2] == "20230506070809"

    def test_falls_back_to_generation_time(self):
        assert segments(convert_fhir_to_hl7(sample_patient(), clock=clock()))[1][2] == "20240102030405"


class TestMultiples:
    def test_first_patient_wins(self, caplog):
        other = dict(sample_patient(), id="patient-2", name=[{"family": "ROE"}])
        with caplog.at_level(logging.WARNING, logger="fhir2hl7.messages"):
            message = convert_fhir_to_hl7([sample_patient(), other], clock=clock())
        assert segments(message)[2][5].startswith("DOE^")
        assert "Patient resources" in caplog.text

    def test_first_encounter_wins(self):
        resources = [
            sample_patient(),
            {"resourceType": "Encounter", "status": "finished"},
            {"resourceType": "Encounter", "status": "planned"},
        ]
        message = convert_fhir_to_hl7(resources, clock=clock())
        assert tags(message).count("PV1") == 1
        assert segments(message)[0][8] == "ADT^A03"
