"""
Migrator — upgrade a record store from the v1 to the v2 id scheme in place.

Steps:
  1. SCAFFOLD   — create missing directories, registries, templates, schemas
  2. CONFIG     — bring the config up to the current standard and save it
  3. DECISIONS  — normalize ids, build the translation table, rewrite files
  4. RISKS      — normalize ids, remap linked_decisions through the table

Safe to re-run: a migrated store is left untouched and the second run reports
zero rewritten records. Malformed files are skipped and listed in the result;
the validator is the authority on what is wrong with them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from . import ids
from .config import (
    DEFAULT_AREA,
    DEFAULT_PROJECT,
    ProvenanceConfig,
    config_path,
    load_config,
    normalize_code,
    normalize_config,
    save_config,
)
from .ids import Kind
from .records import (
    LEGACY_SCHEMA_TAGS,
    SCHEMA_TAGS,
    RecordFile,
    RecordStore,
    SkippedFile,
    write_json,
)
from .scaffold import ensure_scaffold

log = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    decision_count: int = 0
    risk_count: int = 0
    created_files: List[str] = field(default_factory=list)
    updated_files: List[str] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)
    id_map: Dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.decision_count or self.risk_count or self.created_files)


@dataclass
class _Pending:
    """A record document with its planned id."""
    source: RecordFile
    old_id: Any
    new_id: Any


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _plan(store: RecordStore, kind: Kind, project: str, area: str, result: MigrationResult) -> List[_Pending]:
    pending = []
    for rf in store.read(kind):
        if not rf.ok:
            log.info("migration skipped %s: %s", rf.path, rf.error)
            result.skipped.append(SkippedFile(path=rf.path, reason=rf.error))
            continue
        if not isinstance(rf.doc, dict):
            result.skipped.append(SkippedFile(path=rf.path, reason="record is not a JSON object"))
            continue
        old_id = rf.doc.get(kind.id_field)
        pending.append(_Pending(source=rf, old_id=old_id, new_id=ids.normalize_id(kind, old_id, project, area)))
    return pending


def _upgrade_schema_tag(kind: Kind, doc: Dict[str, Any]) -> bool:
    if doc.get("schema") == LEGACY_SCHEMA_TAGS[kind]:
        doc["schema"] = SCHEMA_TAGS[kind]
        return True
    return False


def _remap(values: Any, id_map: Dict[str, str]) -> Any:
    if not isinstance(values, list):
        return values
    return [id_map.get(v, v) if isinstance(v, str) else v for v in values]


def _remap_links(links: Any, id_map: Dict[str, str]) -> Any:
    if not isinstance(links, list):
        return links
    remapped = []
    for link in links:
        url = link.get("url") if isinstance(link, dict) else None
        if isinstance(url, str) and link.get("type") == "decision" and url in id_map:
            link = dict(link, url=id_map[url])
        remapped.append(link)
    return remapped


def _target(store: RecordStore, kind: Kind, item: _Pending) -> Path:
    if isinstance(item.new_id, str) and item.new_id:
        return store.path_for(kind, item.new_id)
    return item.source.path


def _conflicts(store: RecordStore, kind: Kind, item: _Pending, claimed: Set[Path]) -> Optional[Path]:
    """Return the target path when writing ``item`` there would clobber another file."""
    target = _target(store, kind, item).resolve()
    if target == item.source.path.resolve():
        return None
    if target.exists() or target in claimed:
        return target
    return None


def _skip_conflict(store: RecordStore, item: _Pending, taken: Path, result: MigrationResult) -> None:
    reason = f"cannot rename {item.old_id} to {item.new_id}: {store.relative(taken)} is taken"
    log.warning("migration skipped %s: %s", item.source.path, reason)
    result.skipped.append(SkippedFile(path=item.source.path, reason=reason))


def _commit(store: RecordStore, item: _Pending, doc: Dict[str, Any], target: Path, result: MigrationResult) -> None:
    write_json(target, doc)
    if target.resolve() != item.source.path.resolve():
        item.source.path.unlink()
    result.updated_files.append(store.relative(target))


def _accept(store: RecordStore, kind: Kind, pending: List[_Pending], result: MigrationResult) -> List[Tuple[_Pending, Path]]:
    """Pick a target file for every record, dropping renames that would collide.

    A record whose id is unchanged but whose filename does not match it is
    rewritten in place rather than moved onto another file.
    """
    claimed: Set[Path] = {item.source.path.resolve() for item in pending}
    accepted = []
    for item in pending:
        taken = _conflicts(store, kind, item, claimed - {item.source.path.resolve()})
        if taken is None:
            target = _target(store, kind, item)
        elif item.new_id != item.old_id:
            _skip_conflict(store, item, taken, result)
            continue
        else:
            target = item.source.path
        claimed.add(target.resolve())
        accepted.append((item, target))
    return accepted


# ---------------------------------------------------------------------------
# Record passes
# ---------------------------------------------------------------------------


def migrate_decisions(store: RecordStore, project: str, area: str, result: MigrationResult) -> Dict[str, str]:
    """Rewrite decision records; returns the old-id -> new-id translation table."""
    accepted = _accept(store, Kind.DECISION, _plan(store, Kind.DECISION, project, area, result), result)

    id_map: Dict[str, str] = {
        item.old_id: item.new_id for item, _ in accepted if item.new_id != item.old_id
    }

    for item, target in accepted:
        doc = dict(item.source.doc)
        changed = False

        if item.new_id != item.old_id:
            doc["decision_id"] = item.new_id
            changed = True

        if _upgrade_schema_tag(Kind.DECISION, doc):
            changed = True

        if "links" in doc:
            links = _remap_links(doc["links"], id_map)
            if links != doc["links"]:
                doc["links"] = links
                changed = True

        if changed:
            _commit(store, item, doc, target, result)
            result.decision_count += 1

    return id_map


def migrate_risks(
    store: RecordStore,
    project: str,
    area: str,
    id_map: Dict[str, str],
    result: MigrationResult,
) -> None:
    accepted = _accept(store, Kind.RISK, _plan(store, Kind.RISK, project, area, result), result)

    for item, target in accepted:
        doc = dict(item.source.doc)
        changed = False

        if item.new_id != item.old_id:
            doc["risk_id"] = item.new_id
            changed = True

        if _upgrade_schema_tag(Kind.RISK, doc):
            changed = True

        if "linked_decisions" in doc:
            linked = _remap(doc["linked_decisions"], id_map)
            if linked != doc["linked_decisions"]:
                doc["linked_decisions"] = linked
                changed = True

        if changed:
            _commit(store, item, doc, target, result)
            result.risk_count += 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def migrate(root: Path, project: str = DEFAULT_PROJECT, area: str = DEFAULT_AREA) -> MigrationResult:
    """Upgrade the store under ``root``; ``project``/``area`` fill in legacy ids without a scope."""
    root = Path(root)
    result = MigrationResult()

    # Codes are checked before anything on disk is touched.
    project = normalize_code(project, "project")
    area = normalize_code(area, "area")
    existing = load_config(root)
    config: ProvenanceConfig = normalize_config(existing, project, area)
    config.default_project = normalize_code(config.default_project, "project")
    config.default_area = normalize_code(config.default_area, "area")

    result.created_files.extend(ensure_scaffold(root, config))

    save_config(root, config)
    rel = config_path(root).relative_to(root).as_posix()
    if existing is None:
        result.created_files.append(rel)
    else:
        result.updated_files.append(rel)

    store = RecordStore(root, config)
    result.id_map = migrate_decisions(store, config.default_project, config.default_area, result)
    migrate_risks(store, config.default_project, config.default_area, result.id_map, result)

    log.info(
        "migrated %d decision(s) and %d risk(s), skipped %d file(s)",
        result.decision_count, result.risk_count, len(result.skipped),
    )
    return result
