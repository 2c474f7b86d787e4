"""
Store scaffold — directories, registries, templates and bundled schemas.

Everything here is create-if-missing, so running it against an existing
store is a no-op.
"""

from __future__ import annotations

import shutil
import textwrap
from pathlib import Path
from typing import Any, Dict, List

from .config import PROVENANCE_DIR, ProvenanceConfig
from .records import (
    DECISION_SCHEMA_TAG,
    RISK_SCHEMA_TAG,
    TEMPLATE_FILENAME,
    RecordStore,
    read_json,
    write_json,
)
from .schema_check import SCHEMA_FILES, schema_path

CODES_FILENAME = "codes.json"
SEQUENCES_FILENAME = "sequences.json"
README_FILENAME = "README.md"

DEFAULT_CODES = {
    "schema": "provenancecode.codes@1.0",
    "version": "1.0",
    "monorepo": False,
    "projects": {},
}

DEFAULT_SEQUENCES = {
    "schema": "provenancecode.sequences@1.0",
    "version": "1.0",
    "sequences": {},
}


def codes_path(root: Path) -> Path:
    return Path(root) / PROVENANCE_DIR / CODES_FILENAME


def sequences_path(root: Path) -> Path:
    return Path(root) / PROVENANCE_DIR / SEQUENCES_FILENAME


def decision_template(config: ProvenanceConfig) -> Dict[str, Any]:
    return {
        "schema": DECISION_SCHEMA_TAG,
        "decision_id": f"DEC-{config.default_project}-{config.default_area}-000001",
        "title": "Short title of the decision",
        "status": "draft",
        "context": "What is the issue that motivates this decision?",
        "decision": "What is the change being proposed or made?",
        "consequences": "What becomes easier or harder because of this change?",
        "links": [],
        "tags": [],
    }


def risk_template(config: ProvenanceConfig) -> Dict[str, Any]:
    return {
        "schema": RISK_SCHEMA_TAG,
        "risk_id": f"RA-{config.default_project}-{config.default_area}-000001",
        "title": "Short title of the risk",
        "description": "What could go wrong?",
        "severity": "medium",
        "status": "open",
        "linked_decisions": [],
        "mitigation": "How is the risk reduced or contained?",
        "tags": [],
    }


def readme_text(config: ProvenanceConfig) -> str:
    return textwrap.dedent(f"""\
        # Provenance records

        Decisions and risks for this repository, one JSON file per record.

        - `decisions/` — `DEC-{{PROJECT}}-{{SUBPROJECT}}-{{SEQ6}}.json`
        - `risks/` — `RA-{{PROJECT}}-{{SUBPROJECT}}-{{SEQ6}}.json`
        - `schemas/` — JSON schemas the records are validated against
        - `codes.json` — registered project/subproject codes
        - `sequences.json` — highest sequence number used per scope

        Default scope: `{config.default_project}-{config.default_area}`.

        Commands:

            prvc add decision "Title" --context "..." --decision "..."
            prvc validate
            prvc migrate
    """)


def _create_json(path: Path, data: Any, root: Path, created: List[str]) -> None:
    if path.exists():
        return
    write_json(path, data)
    created.append(path.relative_to(root).as_posix())


def ensure_scaffold(root: Path, config: ProvenanceConfig) -> List[str]:
    """Create whatever part of the store layout is missing.

    Returns the repository-relative paths of the files it wrote.
    """
    root = Path(root)
    store = RecordStore(root, config)
    created: List[str] = []

    store.decisions_dir.mkdir(parents=True, exist_ok=True)
    store.risks_dir.mkdir(parents=True, exist_ok=True)
    schemas_dir = root / config.schemas_path
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for kind, name in SCHEMA_FILES.items():
        target = schemas_dir / name
        if not target.exists():
            shutil.copyfile(schema_path(kind), target)
            created.append(target.relative_to(root).as_posix())

    _create_json(codes_path(root), DEFAULT_CODES, root, created)
    _create_json(sequences_path(root), DEFAULT_SEQUENCES, root, created)
    _create_json(store.decisions_dir / TEMPLATE_FILENAME, decision_template(config), root, created)
    _create_json(store.risks_dir / TEMPLATE_FILENAME, risk_template(config), root, created)

    readme = root / PROVENANCE_DIR / README_FILENAME
    if not readme.exists():
        readme.write_text(readme_text(config), encoding="utf-8")
        created.append(readme.relative_to(root).as_posix())

    return created


def register_codes(root: Path, project: str, area: str) -> None:
    """Record a project/subproject pair in ``codes.json``."""
    path = codes_path(root)
    codes = read_json(path) if path.exists() else dict(DEFAULT_CODES, projects={})
    projects = codes.setdefault("projects", {})
    entry = projects.setdefault(project, {"name": project, "subprojects": {}})
    entry.setdefault("subprojects", {}).setdefault(area, {"name": area, "workspace": "."})
    write_json(path, codes)
