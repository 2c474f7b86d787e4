import json
from pathlib import Path

import pytest

from prvc.config import ProvenanceConfig, save_config
from prvc.records import DECISION_SCHEMA_TAG, RISK_SCHEMA_TAG, RecordStore


def make_decision(decision_id, **overrides):
    doc = {
        "schema": DECISION_SCHEMA_TAG,
        "decision_id": decision_id,
        "title": f"Decision {decision_id}",
        "status": "accepted",
        "context": "We need a database.",
        "decision": "Use PostgreSQL.",
        "consequences": "Ops must run Postgres.",
    }
    doc.update(overrides)
    return {k: v for k, v in doc.items() if v is not None}


def make_risk(risk_id, **overrides):
    doc = {
        "schema": RISK_SCHEMA_TAG,
        "risk_id": risk_id,
        "title": f"Risk {risk_id}",
        "description": "Something could go wrong.",
        "severity": "high",
        "status": "open",
    }
    doc.update(overrides)
    return {k: v for k, v in doc.items() if v is not None}


@pytest.fixture
def config():
    return ProvenanceConfig(default_project="ACME", default_area="WEB")


@pytest.fixture
def root(tmp_path, config):
    """A repository with an initialized config and empty record directories."""
    save_config(tmp_path, config)
    (tmp_path / config.decisions_path).mkdir(parents=True)
    (tmp_path / config.risks_path).mkdir(parents=True)
    return tmp_path


@pytest.fixture
def store(root, config):
    return RecordStore(root, config)


@pytest.fixture
def write_json_file():
    def _write(path: Path, data):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def add_decision_file(store, write_json_file):
    def _add(decision_id, filename=None, **overrides):
        name = filename or f"{decision_id}.json"
        return write_json_file(store.decisions_dir / name, make_decision(decision_id, **overrides))
    return _add


@pytest.fixture
def add_risk_file(store, write_json_file):
    def _add(risk_id, filename=None, **overrides):
        name = filename or f"{risk_id}.json"
        return write_json_file(store.risks_dir / name, make_risk(risk_id, **overrides))
    return _add


def read(path: Path):
    return json.loads(Path(path).read_text(encoding="utf-8"))


@pytest.fixture
def read_json_file():
    return read


@pytest.fixture
def decision_doc():
    return make_decision


@pytest.fixture
def risk_doc():
    return make_risk
