"""Tests for the record validator and the warn/fail exit policy."""

import pytest

from prvc.records import LEGACY_DECISION_SCHEMA_TAG, LEGACY_RISK_SCHEMA_TAG
from prvc.validate import ValidationResult, exit_code, validate


def _messages(findings):
    return [f.message for f in findings]


class TestDecisionChecks:
    def test_clean_store_is_valid(self, root, config, add_decision_file, add_risk_file):
        add_decision_file("DEC-ACME-WEB-000001")
        add_risk_file("RA-ACME-WEB-000001", linked_decisions=["DEC-ACME-WEB-000001"])

        result = validate(root, config)

        assert result.valid
        assert result.errors == []
        assert result.warnings == []
        assert result.decision_count == 1
        assert result.risk_count == 1

    def test_bad_id_is_one_identity_error(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001")
        add_decision_file("DEC-ACME-WEB-000002")
        bad = add_decision_file("DEC-1-1-1")

        result = validate(root, config)

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].file == bad
        assert result.errors[0].message == "Invalid decision_id format: DEC-1-1-1"
        assert not any(m.startswith("Schema validation failed") for m in _messages(result.errors))

    def test_missing_consequences_only_warns(self, root, config, add_decision_file):
        for seq in range(1, 4):
            add_decision_file(f"DEC-ACME-WEB-00000{seq}", consequences=None)

        result = validate(root, config)

        assert result.valid
        assert result.errors == []
        assert len(result.warnings) == 3
        assert all("consequences" in m for m in _messages(result.warnings))

    def test_shape_errors_carry_details(self, root, config, add_decision_file):
        path = add_decision_file("DEC-ACME-WEB-000001", status="maybe", context=None)

        result = validate(root, config)

        assert not result.valid
        shape = [f for f in result.errors if f.message.startswith("Schema validation failed")]
        assert len(shape) == 2
        assert all(f.file == path for f in shape)
        validators = sorted(f.details["validator"] for f in shape)
        assert validators == ["enum", "required"]

    def test_timestamps_must_be_date_time(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001", date_created="not a timestamp", date_updated="2026-10-17T09:30:00Z")

        result = validate(root, config)

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].details["validator"] == "format"
        assert result.errors[0].details["path"] == "date_created"

    def test_legacy_schema_tag_warns(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001", schema=LEGACY_DECISION_SCHEMA_TAG)

        result = validate(root, config)

        assert result.valid
        assert len(result.warnings) == 1
        assert "Legacy schema identifier" in result.warnings[0].message

    def test_unknown_schema_tag_is_an_error(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001", schema="something.else")

        result = validate(root, config)

        assert not result.valid
        assert _messages(result.errors) == ["Unknown schema identifier 'something.else'; expected 'provenancecode.decision.v2'"]

    def test_filename_mismatch_warns(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001", filename="first.json")

        result = validate(root, config)

        assert result.valid
        assert _messages(result.warnings) == ["Filename 'first.json' does not match decision_id 'DEC-ACME-WEB-000001'"]

    def test_duplicate_ids_are_errors(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001")
        add_decision_file("DEC-ACME-WEB-000001", filename="copy.json")

        result = validate(root, config)

        assert not result.valid
        assert any(m.startswith("Duplicate decision_id") for m in _messages(result.errors))

    def test_template_is_not_validated(self, root, config, store):
        (store.decisions_dir / "TEMPLATE.json").write_text("{}", encoding="utf-8")

        result = validate(root, config)

        assert result.valid
        assert result.decision_count == 0


class TestRiskChecks:
    def test_bad_risk_id(self, root, config, add_risk_file):
        add_risk_file("RSK-ACME-WEB-000001")

        result = validate(root, config)

        assert _messages(result.errors) == ["Invalid risk_id format: RSK-ACME-WEB-000001"]

    def test_legacy_risk_schema_warns(self, root, config, add_risk_file):
        add_risk_file("RA-ACME-WEB-000001", schema=LEGACY_RISK_SCHEMA_TAG)

        result = validate(root, config)

        assert result.valid
        assert len(result.warnings) == 1

    def test_linked_decision_grammar(self, root, config, add_risk_file):
        add_risk_file("RA-ACME-WEB-000001", linked_decisions=["DEC-000042", "DEC-ACME-WEB-000001"])

        result = validate(root, config)

        assert _messages(result.errors) == ["Invalid linked decision ID format: DEC-000042"]

    def test_well_formed_but_missing_link_passes_by_default(self, root, config, add_risk_file):
        add_risk_file("RA-ACME-WEB-000001", linked_decisions=["DEC-ACME-WEB-000099"])

        assert validate(root, config).valid


class TestReferenceChecks:
    def test_dangling_risk_link_is_an_error_when_enabled(self, root, config, add_decision_file, add_risk_file):
        add_decision_file("DEC-ACME-WEB-000001")
        add_risk_file("RA-ACME-WEB-000001", linked_decisions=["DEC-ACME-WEB-000001", "DEC-ACME-WEB-000099"])

        result = validate(root, config, check_refs=True)

        assert _messages(result.errors) == ["Linked decision not found: DEC-ACME-WEB-000099"]

    def test_dangling_decision_link(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001", links=[{"type": "decision", "url": "DEC-ACME-WEB-000002"}])

        result = validate(root, config, check_refs=True)

        assert _messages(result.errors) == ["Linked decision not found: DEC-ACME-WEB-000002"]

    def test_config_toggle(self, root, config, add_risk_file):
        add_risk_file("RA-ACME-WEB-000001", linked_decisions=["DEC-ACME-WEB-000099"])
        config.check_references = True

        assert not validate(root, config).valid
        assert validate(root, config, check_refs=False).valid


class TestMalformedFiles:
    def test_one_bad_file_among_ten(self, root, config, store, add_decision_file):
        for seq in range(1, 10):
            add_decision_file(f"DEC-ACME-WEB-{seq:06d}")
        bad = store.decisions_dir / "DEC-ACME-WEB-000010.json"
        bad.write_text('{"decision_id": ', encoding="utf-8")

        result = validate(root, config)

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].file == bad
        assert result.errors[0].message.startswith("Failed to parse JSON")
        assert result.decision_count == 10

    def test_non_object_document(self, root, config, store):
        (store.risks_dir / "RA-ACME-WEB-000001.json").write_text("[]", encoding="utf-8")

        result = validate(root, config)

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].details["path"] == "<root>"


class TestExitCode:
    @pytest.mark.parametrize("valid,mode,expected", [
        (True, "warn", 0),
        (True, "fail", 0),
        (False, "warn", 0),
        (False, "fail", 1),
    ])
    def test_policy(self, valid, mode, expected):
        assert exit_code(ValidationResult(valid=valid), mode) == expected

    def test_warnings_never_fail(self, root, config, add_decision_file):
        add_decision_file("DEC-ACME-WEB-000001", consequences=None)
        assert exit_code(validate(root, config), "fail") == 0


def test_legacy_id_points_at_migrate(root, config, add_decision_file):
    add_decision_file("DEC-000042")

    result = validate(root, config)

    assert _messages(result.errors) == ["Invalid decision_id format: DEC-000042"]
    assert _messages(result.warnings) == ["Legacy decision id 'DEC-000042'; run: prvc migrate"]
