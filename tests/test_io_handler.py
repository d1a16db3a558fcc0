"""Tests for file / server input and the CLI pipeline."""

import json

import pytest

from fhir2hl7.config import ConversionOptions
from fhir2hl7.io_handler import fetch_bundle, read_fhir_file, write_hl7
from fhir2hl7.run_pipeline import main, run
from fhir2hl7.samples import sample_bundle, sample_patient


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        return FakeResponse(self.payload)


class TestReadFhirFile:
    def test_json(self, tmp_path):
        p = tmp_path / "bundle.json"
        p.write_text(json.dumps(sample_bundle()), encoding="utf-8")
        docs = read_fhir_file(p)
        assert len(docs) == 1
        assert docs[0]["resourceType"] == "Bundle"

    def test_ndjson(self, tmp_path):
        p = tmp_path / "patients.ndjson"
        p.write_text(json.dumps(sample_patient()) + "\n\n" + json.dumps(sample_bundle()) + "\n", encoding="utf-8")
        docs = read_fhir_file(p)
        assert [d["resourceType"] for d in docs] == ["Patient", "Bundle"]

    def test_malformed_json_propagates(self, tmp_path):
        p = tmp_path / "bad.json"
        p.write_text("{not json", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            read_fhir_file(p)


class TestFetchBundle:
    def test_builds_url_and_auth_header(self):
        session = FakeSession(sample_bundle())
        bundle = fetch_bundle("https://fhir.example.org/r4/", "/Patient/1/$everything", "tok", session=session)
        assert bundle["resourceType"] == "Bundle"
        url, headers, timeout = session.calls[0]
        assert url == "https://fhir.example.org/r4/Patient/1/$everything"
        assert headers["Authorization"] == "Bearer tok"
        assert headers["Accept"] == "application/fhir+json"
        assert timeout == 60

    def test_no_token(self):
        session = FakeSession({})
        fetch_bundle("https://fhir.example.org", "Patient", session=session)
        assert "Authorization" not in session.calls[0][1]


class TestOutput:
    def test_write_hl7_keeps_segment_separator(self, tmp_path):
        paths = write_hl7(["MSH|a\rPID|b", "MSH|c"], tmp_path / "out", "sample run")
        assert len(paths) == 2
        assert paths[0].endswith("sample_run_1.hl7")
        with open(paths[0], "rb") as f:
            assert f.read() == b"MSH|a\rPID|b"

    def test_run_writes_files(self, tmp_path):
        res = run([("sample", sample_bundle()), ("sample", sample_patient())], ConversionOptions(), str(tmp_path))
        assert res["messages"] == 2
        assert len(res["written_files"]) == 2

    def test_run_prints_without_out_dir(self, capsys):
        res = run([("p", sample_patient())], ConversionOptions())
        assert res["written_files"] == []
        assert "PID|1|" in capsys.readouterr().out


class TestMain:
    def test_sample_with_config(self, tmp_path, capsys):
        cfg = tmp_path / "hl7.yaml"
        cfg.write_text("sendingApplication: FROM-YAML\n", encoding="utf-8")
        main(["--sample", "--config", str(cfg), "--receiving-app", "CLI-APP"])
        out = capsys.readouterr().out
        assert "MSH|^~\\&|FROM-YAML|FHIR-HYDRANT-FACILITY|CLI-APP|" in out
        assert "[OK]" in out

    def test_input_file_to_out_dir(self, tmp_path, capsys):
        src = tmp_path / "in.json"
        src.write_text(json.dumps(sample_bundle()), encoding="utf-8")
        main(["--in", str(src), "--out", str(tmp_path / "hl7")])
        assert len(list((tmp_path / "hl7").glob("in_*.hl7"))) == 1

    def test_nothing_to_do(self, monkeypatch):
        monkeypatch.delenv("FHIR_BASE_URL", raising=False)
        with pytest.raises(SystemExit):
            main([])

    def test_fetch_needs_path(self, monkeypatch):
        monkeypatch.delenv("FHIR_BASE_URL", raising=False)
        with pytest.raises(SystemExit):
            main(["--fhir-url", "https://fhir.example.org"])
