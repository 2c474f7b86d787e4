"""End-to-end tests for the prvc command line."""

import json

import pytest

from prvc.cli import main
from prvc.config import load_config


@pytest.fixture
def run(tmp_path, capsys):
    def _run(*argv):
        code = main(["--root", str(tmp_path), *argv])
        out, err = capsys.readouterr()
        return code, out, err
    return _run


@pytest.fixture
def initialized(run):
    code, _, _ = run("init", "--app-code", "acme", "--area", "web")
    assert code == 0
    return run


def test_init_creates_layout(run, tmp_path):
    code, out, _ = run("init", "--app-code", "acme", "--area", "web")

    assert code == 0
    assert "provenance/codes.json" in out
    config = load_config(tmp_path)
    assert config.default_project == "ACME"
    assert config.default_area == "WEB"
    assert (tmp_path / "provenance" / "schemas" / "risk.schema.json").exists()
    codes = json.loads((tmp_path / "provenance" / "codes.json").read_text(encoding="utf-8"))
    assert "WEB" in codes["projects"]["ACME"]["subprojects"]


def test_init_twice_needs_force(initialized):
    code, out, _ = initialized("init")
    assert code == 1
    assert "already initialized" in out


def test_init_rejects_bad_code(run):
    code, _, err = run("init", "--app-code", "TOOLONG")
    assert code == 1
    assert "Invalid project code" in err


def test_commands_need_init(run):
    code, _, err = run("validate")
    assert code == 1
    assert "prvc init" in err


def test_next_id_and_add(initialized):
    assert initialized("next-id", "decision")[1].strip() == "DEC-ACME-WEB-000001"

    code, out, _ = initialized("add", "decision", "Use PostgreSQL", "--context", "Need SQL", "--tag", "db")
    assert code == 0
    assert "DEC-ACME-WEB-000001" in out

    assert initialized("next-id", "decision", "--format", "sequence")[1].strip() == "000002"
    assert initialized("next-id", "risk", "--area", "api")[1].strip() == "RA-ACME-API-000001"


def test_add_risk_rejects_decision_status(initialized):
    code, _, err = initialized("add", "risk", "Lock-in", "--status", "draft")
    assert code == 1
    assert "risk status" in err


def test_validate_modes(initialized, tmp_path):
    initialized("add", "decision", "Use PostgreSQL")
    bad = tmp_path / "provenance" / "decisions" / "DEC-1-1-1.json"
    doc = json.loads((tmp_path / "provenance" / "decisions" / "DEC-ACME-WEB-000001.json").read_text(encoding="utf-8"))
    doc["decision_id"] = "DEC-1-1-1"
    bad.write_text(json.dumps(doc), encoding="utf-8")

    code, out, _ = initialized("validate")
    assert code == 0
    assert "1 error(s)" in out

    assert initialized("validate", "--mode", "fail")[0] == 1

    code, out, _ = initialized("validate", "--format", "json")
    report = json.loads(out)
    assert report["valid"] is False
    assert report["mode"] == "warn"
    assert report["errors"][0]["file"] == "provenance/decisions/DEC-1-1-1.json"


def test_show_and_related(initialized):
    initialized("add", "decision", "Use PostgreSQL", "--tag", "db")
    initialized("add", "risk", "Replica lag", "--linked-decision", "DEC-ACME-WEB-000001")

    code, out, _ = initialized("show", "RA-ACME-WEB-000001", "--format", "json")
    assert code == 0
    assert json.loads(out)["linked_decisions"] == ["DEC-ACME-WEB-000001"]

    code, out, _ = initialized("related", "DEC-ACME-WEB-000001", "--format", "json")
    assert json.loads(out)["risks"] == ["RA-ACME-WEB-000001"]

    code, _, err = initialized("show", "DEC-ACME-WEB-000042")
    assert code == 1
    assert "Record not found" in err


def test_search_output(initialized):
    initialized("add", "decision", "Use PostgreSQL")

    code, out, _ = initialized("search", "postgres", "--format", "json")
    assert code == 0
    assert [hit["id"] for hit in json.loads(out)] == ["DEC-ACME-WEB-000001"]

    code, out, _ = initialized("search", "mongodb")
    assert "No matches found." in out


def test_config_get_and_set(initialized, tmp_path):
    assert initialized("config", "get", "validation.mode")[1].strip() == '"warn"'

    code, _, _ = initialized("config", "set", "--mode", "fail", "--check-references", "on")
    assert code == 0
    config = load_config(tmp_path)
    assert config.validation_mode == "fail"
    assert config.check_references is True

    code, _, err = initialized("config", "get", "nope")
    assert code == 1
    assert "Key not found" in err


def test_migrate_reports_json(run, tmp_path):
    decisions = tmp_path / "provenance" / "decisions"
    decisions.mkdir(parents=True)
    (decisions / "DEC-000001.json").write_text(json.dumps({
        "schema": "https://provenancecode.org/schemas/decision.g2.schema.json",
        "decision_id": "DEC-000001",
        "title": "Legacy",
        "status": "accepted",
        "context": "c",
        "decision": "d",
    }), encoding="utf-8")

    code, out, _ = run("migrate", "--app-code", "acme", "--area", "web", "--format", "json")

    assert code == 0
    report = json.loads(out)
    assert report["decisions"] == 1
    assert report["renamed"] == {"DEC-000001": "DEC-ACME-WEB-000001"}
    assert (decisions / "DEC-ACME-WEB-000001.json").exists()

    code, out, _ = run("migrate", "--app-code", "acme", "--area", "web")
    assert code == 0
    assert "Already up to date" in out


def test_bare_init_uses_default_codes(run, tmp_path):
    code, _, err = run("init")

    assert code == 0
    assert err == ""
    config = load_config(tmp_path)
    assert config.default_project == "PROJ"
    assert config.default_area == "CORE"


def test_migrate_rejects_bad_code(run, tmp_path):
    decisions = tmp_path / "provenance" / "decisions"
    decisions.mkdir(parents=True)
    legacy = decisions / "DEC-000001.json"
    legacy.write_text(json.dumps({"decision_id": "DEC-000001"}), encoding="utf-8")

    code, _, err = run("migrate", "--app-code", "TOOLONG")

    assert code == 1
    assert "Invalid project code" in err
    assert sorted(p.name for p in decisions.iterdir()) == ["DEC-000001.json"]
    assert load_config(tmp_path) is None


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert "2.0.0" in capsys.readouterr().out
