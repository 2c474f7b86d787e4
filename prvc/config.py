"""
Repository configuration — ``provenance/provenance.config.json``.

The config is always passed explicitly; nothing here caches it.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from . import ids
from .errors import ConfigError, InvalidCodeError, NotInitializedError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PROVENANCE_DIR = "provenance"
CONFIG_FILENAME = "provenance.config.json"

STANDARD = "v2.0"
STANDARD_VERSION = "2.0"
DECISION_ID_SCHEME = "DEC-{PROJECT}-{SUBPROJECT}-{SEQ6}"
RISK_ID_SCHEME = "RA-{PROJECT}-{SUBPROJECT}-{SEQ6}"

DEFAULT_PROJECT = "PROJ"
DEFAULT_AREA = "CORE"

MODE_WARN = "warn"
MODE_FAIL = "fail"
VALIDATION_MODES = (MODE_WARN, MODE_FAIL)

DEFAULT_PATHS = {
    "root": PROVENANCE_DIR,
    "decisions": f"{PROVENANCE_DIR}/decisions",
    "risks": f"{PROVENANCE_DIR}/risks",
    "schemas": f"{PROVENANCE_DIR}/schemas",
}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class ProvenanceConfig:
    standard: str = STANDARD
    version: str = STANDARD_VERSION
    id_scheme: str = DECISION_ID_SCHEME
    risk_id_scheme: str = RISK_ID_SCHEME
    default_project: str = DEFAULT_PROJECT
    default_area: str = DEFAULT_AREA
    paths: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PATHS))
    validation_mode: str = MODE_WARN
    check_references: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def decisions_path(self) -> str:
        return self.paths.get("decisions", DEFAULT_PATHS["decisions"])

    @property
    def risks_path(self) -> str:
        return self.paths.get("risks", DEFAULT_PATHS["risks"])

    @property
    def schemas_path(self) -> str:
        return self.paths.get("schemas", DEFAULT_PATHS["schemas"])

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "ProvenanceConfig":
        if not isinstance(doc, dict):
            raise ConfigError("config must be a JSON object")

        known = {
            "standard", "version", "idScheme", "riskIdScheme",
            "defaultAppCode", "defaultArea", "paths", "validation",
        }
        validation = doc.get("validation") if isinstance(doc.get("validation"), dict) else {}
        paths = dict(DEFAULT_PATHS)
        if isinstance(doc.get("paths"), dict):
            paths.update({k: v for k, v in doc["paths"].items() if isinstance(v, str)})

        return cls(
            standard=doc.get("standard", STANDARD),
            version=doc.get("version", STANDARD_VERSION),
            id_scheme=doc.get("idScheme", DECISION_ID_SCHEME),
            risk_id_scheme=doc.get("riskIdScheme", RISK_ID_SCHEME),
            default_project=doc.get("defaultAppCode") or "",
            default_area=doc.get("defaultArea") or "",
            paths=paths,
            validation_mode=validation.get("mode", MODE_WARN),
            check_references=bool(validation.get("checkReferences", False)),
            extra={k: copy.deepcopy(v) for k, v in doc.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "standard": self.standard,
            "version": self.version,
            "idScheme": self.id_scheme,
            "riskIdScheme": self.risk_id_scheme,
            "defaultAppCode": self.default_project,
            "defaultArea": self.default_area,
            "paths": dict(self.paths),
            "validation": {"mode": self.validation_mode},
        }
        if self.check_references:
            doc["validation"]["checkReferences"] = True
        doc.update(copy.deepcopy(self.extra))
        return doc


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def config_path(root: Path) -> Path:
    return Path(root) / PROVENANCE_DIR / CONFIG_FILENAME


def load_config(root: Path) -> Optional[ProvenanceConfig]:
    """Return the repository config, or None when there is none to read."""
    path = config_path(root)
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as f:
            doc = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON: {e}") from e
    return ProvenanceConfig.from_dict(doc)


def require_config(root: Path) -> ProvenanceConfig:
    config = load_config(root)
    if config is None:
        raise NotInitializedError(Path(root))
    return config


def save_config(root: Path, config: ProvenanceConfig) -> Path:
    path = config_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_code(code: str, label: str) -> str:
    value = (code or "").strip().upper()
    if not ids.is_valid_code(value):
        raise InvalidCodeError(label, code)
    return value


def normalize_config(
    config: Optional[ProvenanceConfig],
    project: str = DEFAULT_PROJECT,
    area: str = DEFAULT_AREA,
) -> ProvenanceConfig:
    """Bring a config (or a missing one) up to the current standard.

    Codes already set in the config win over ``project``/``area``.
    """
    result = copy.deepcopy(config) if config is not None else ProvenanceConfig()

    result.standard = STANDARD
    result.version = STANDARD_VERSION
    result.id_scheme = DECISION_ID_SCHEME
    result.risk_id_scheme = RISK_ID_SCHEME
    result.default_project = (result.default_project if config else "") or project
    result.default_project = result.default_project.upper()
    result.default_area = (result.default_area if config else "") or area
    result.default_area = result.default_area.upper()

    paths = dict(DEFAULT_PATHS)
    paths.update(result.paths or {})
    result.paths = paths

    if result.validation_mode not in VALIDATION_MODES:
        result.validation_mode = MODE_WARN

    return result


def get_value(config: ProvenanceConfig, key: str) -> Any:
    """Dot-path lookup on the on-disk form, e.g. ``validation.mode``."""
    node: Any = config.to_dict()
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(key)
        node = node[part]
    return node
