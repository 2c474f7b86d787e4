"""Tests for typed records and the on-disk record store."""

import pytest

from prvc.errors import RecordError
from prvc.ids import Kind
from prvc.records import DecisionRecord, RecordStore, RiskRecord, parse_record

from conftest import make_decision, make_risk


class TestDecisionRecord:
    def test_round_trip_keeps_unknown_fields(self):
        doc = make_decision("DEC-ACME-WEB-000001", reviewers=["kim"], tags=["db", "db", "ops"])
        record = DecisionRecord.from_dict(doc)

        assert record.tags == ["db", "ops"]
        assert record.extra == {"reviewers": ["kim"]}
        assert record.to_dict()["reviewers"] == ["kim"]

    def test_missing_required_field(self):
        with pytest.raises(RecordError):
            DecisionRecord.from_dict(make_decision("DEC-ACME-WEB-000001", context=None))

    def test_bad_status(self):
        with pytest.raises(RecordError):
            DecisionRecord.from_dict(make_decision("DEC-ACME-WEB-000001", status="maybe"))

    def test_linked_decision_ids(self):
        record = DecisionRecord.from_dict(make_decision(
            "DEC-ACME-WEB-000002",
            links=[
                {"type": "decision", "url": "DEC-ACME-WEB-000001"},
                {"type": "issue", "url": "https://example.com/1"},
            ],
        ))
        assert record.linked_decision_ids == ["DEC-ACME-WEB-000001"]


class TestRiskRecord:
    def test_parse(self):
        record = parse_record(Kind.RISK, make_risk("RA-ACME-WEB-000001", probability="high", owner="ops"))
        assert isinstance(record, RiskRecord)
        assert record.record_id == "RA-ACME-WEB-000001"
        assert record.owner == "ops"

    def test_bad_severity(self):
        with pytest.raises(RecordError):
            RiskRecord.from_dict(make_risk("RA-ACME-WEB-000001", severity="huge"))

    def test_not_an_object(self):
        with pytest.raises(RecordError):
            RiskRecord.from_dict(["RA-ACME-WEB-000001"])


class TestRecordStore:
    def test_load_skips_bad_files(self, store, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001")
        add_decision_file("DEC-ACME-WEB-000002", status="maybe")
        (store.decisions_dir / "broken.json").write_text("{", encoding="utf-8")

        result = store.load(Kind.DECISION)

        assert [r.decision_id for r in result.records] == ["DEC-ACME-WEB-000001"]
        assert len(result.skipped) == 2

    def test_find_looks_in_both_directories(self, store, add_decision_file, add_risk_file):
        add_decision_file("DEC-ACME-WEB-000001")
        add_risk_file("RA-ACME-WEB-000001")

        assert store.find("RA-ACME-WEB-000001").kind is Kind.RISK
        assert store.find("DEC-ACME-WEB-000001").kind is Kind.DECISION
        assert store.find("DEC-ACME-WEB-000009") is None

    def test_write_names_file_after_id(self, store, read_json_file):
        record = DecisionRecord.from_dict(make_decision("DEC-ACME-WEB-000004"))
        path = store.write(record)

        assert path == store.decisions_dir / "DEC-ACME-WEB-000004.json"
        assert read_json_file(path)["decision_id"] == "DEC-ACME-WEB-000004"
        assert path.read_text(encoding="utf-8").endswith("}\n")

    def test_missing_directories_read_as_empty(self, tmp_path, config):
        assert RecordStore(tmp_path, config).read(Kind.RISK) == []
