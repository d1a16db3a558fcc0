"""Tests for conversion options."""

import pytest

from fhir2hl7.config import ConversionOptions, coerce_options, load_options


class TestConversionOptions:
    def test_defaults(self):
        opts = ConversionOptions()
        assert opts.sending_application == "FHIR-HYDRANT"
        assert opts.sending_facility == "FHIR-HYDRANT-FACILITY"
        assert opts.receiving_application == "RECEIVING-APP"
        assert opts.receiving_facility == "RECEIVING-FACILITY"
        assert opts.processing_id == "P"
        assert opts.version_id == "2.5"

    def test_camel_case_keys(self):
        opts = ConversionOptions.from_mapping({"sendingApplication": "EHR", "versionId": "2.3", "processingId": "T"})
        assert opts.sending_application == "EHR"
        assert opts.version_id == "2.3"
        assert opts.processing_id == "T"

    def test_snake_case_keys_and_unknown_keys(self):
        opts = ConversionOptions.from_mapping({"receiving_facility": "LAB", "colour": "blue"})
        assert opts.receiving_facility == "LAB"

    def test_empty_values_keep_defaults(self):
        opts = ConversionOptions.from_mapping({"sendingApplication": "", "sendingFacility": None})
        assert opts == ConversionOptions()

    def test_merged(self):
        opts = ConversionOptions().merged(sending_application="X", receiving_application=None)
        assert opts.sending_application == "X"
        assert opts.receiving_application == "RECEIVING-APP"

    def test_coerce(self):
        assert coerce_options(None) == ConversionOptions()
        opts = ConversionOptions(processing_id="T")
        assert coerce_options(opts) is opts
        assert coerce_options({"processingId": "D"}).processing_id == "D"
        with pytest.raises(TypeError):
            coerce_options("P")


class TestLoadOptions:
    def test_yaml_file(self, tmp_path):
        p = tmp_path / "hl7.yaml"
        p.write_text("sendingApplication: EHR\nsending_facility: GENERAL\nversionId: '2.4'\n", encoding="utf-8")
        opts = load_options(p)
        assert opts.sending_application == "EHR"
        assert opts.sending_facility == "GENERAL"
        assert opts.version_id == "2.4"

    def test_nested_under_hl7_key(self, tmp_path):
        p = tmp_path / "app.yaml"
        p.write_text("hl7:\n  receivingApplication: LAB\nother: 1\n", encoding="utf-8")
        assert load_options(p).receiving_application == "LAB"

    def test_empty_file(self, tmp_path):
        p = tmp_path / "empty.yaml"
        p.write_text("", encoding="utf-8")
        assert load_options(p) == ConversionOptions()

    def test_unquoted_number_is_rejected(self, tmp_path):
        p = tmp_path / "hl7.yaml"
        p.write_text("versionId: 2.10\n", encoding="utf-8")
        with pytest.raises(TypeError, match="versionId"):
            load_options(p)

    def test_quoted_version_kept_verbatim(self, tmp_path):
        p = tmp_path / "hl7.yaml"
        p.write_text("versionId: '2.10'\n", encoding="utf-8")
        assert load_options(p).version_id == "2.10"

    def test_not_a_mapping(self, tmp_path):
        p = tmp_path / "list.yaml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_options(p)
