"""ProvenanceCode ledger: decision and risk records kept as JSON files in the repository."""

from .config import ProvenanceConfig, load_config, save_config
from .ids import Kind, format_id, normalize_decision_id, normalize_risk_id
from .migrate import MigrationResult, migrate
from .records import DecisionRecord, RecordStore, RiskRecord
from .sequence import next_sequence, reserve
from .validate import ValidationResult, exit_code, validate

__version__ = "2.0.0"

__all__ = [
    "DecisionRecord",
    "Kind",
    "MigrationResult",
    "ProvenanceConfig",
    "RecordStore",
    "RiskRecord",
    "ValidationResult",
    "exit_code",
    "format_id",
    "load_config",
    "migrate",
    "next_sequence",
    "normalize_decision_id",
    "normalize_risk_id",
    "reserve",
    "save_config",
    "validate",
]
