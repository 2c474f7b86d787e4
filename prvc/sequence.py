"""
Sequence Allocator.

Each (kind, project, area) scope numbers its records independently. The next
number is one past the largest ever seen in that scope: the largest sequence
found on disk, or the high-water mark kept in ``sequences.json`` if that is
larger. Observed maxima are written back to the registry, so deleting the
newest record never frees its number for reuse.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from . import ids
from .ids import Kind
from .records import RecordStore, read_json, write_json
from .scaffold import DEFAULT_SEQUENCES, sequences_path

log = logging.getLogger(__name__)


def _scope_key(kind: Kind, project: str, area: str) -> str:
    return ids.scope_prefix(kind, project, area).rstrip("-")


def observed_max(store: RecordStore, kind: Kind, project: str, area: str) -> int:
    """Largest sequence among current-scheme ids of the scope; 0 if none."""
    max_seq = 0
    for rf in store.iter_docs(kind):
        if not isinstance(rf.doc, dict):
            continue
        parsed = ids.parse_id(rf.doc.get(kind.id_field))
        if parsed is None or parsed.kind is not kind:
            continue
        if (parsed.project, parsed.area) == (project, area):
            max_seq = max(max_seq, parsed.sequence)
    return max_seq


def _load_registry(store: RecordStore) -> Optional[Dict[str, int]]:
    path = sequences_path(store.root)
    if not path.exists():
        return {}
    try:
        doc = read_json(path)
    except (OSError, ValueError) as e:
        log.warning("ignoring unreadable sequence registry %s: %s", path, e)
        return None
    sequences = doc.get("sequences") if isinstance(doc, dict) else None
    if not isinstance(sequences, dict):
        return {}
    return {k: v for k, v in sequences.items() if isinstance(v, int) and not isinstance(v, bool)}


def _record_high_water(store: RecordStore, key: str, value: int) -> None:
    """Raise the registry's mark for ``key`` to ``value``; never lowers it."""
    path = sequences_path(store.root)
    if not path.parent.is_dir():
        return
    try:
        doc = read_json(path) if path.exists() else dict(DEFAULT_SEQUENCES, sequences={})
        if not isinstance(doc, dict):
            doc = dict(DEFAULT_SEQUENCES, sequences={})
        sequences = doc.setdefault("sequences", {})
        if not isinstance(sequences, dict):
            sequences = doc["sequences"] = {}
        current = sequences.get(key)
        if isinstance(current, int) and current >= value:
            return
        sequences[key] = value
        write_json(path, doc)
    except (OSError, ValueError) as e:
        log.warning("could not update sequence registry %s: %s", path, e)


def next_sequence(store: RecordStore, kind: Kind, project: str, area: str) -> str:
    """Return the next unused 6-digit sequence for the scope. Never fails."""
    key = _scope_key(kind, project, area)
    seen = observed_max(store, kind, project, area)
    registry = _load_registry(store)
    high_water = (registry or {}).get(key, 0)

    if registry is not None and seen > high_water:
        _record_high_water(store, key, seen)

    return ids.format_sequence(max(seen, high_water) + 1)


def reserve(store: RecordStore, kind: Kind, project: str, area: str) -> str:
    """Allocate the next id of the scope and mark its number as used."""
    sequence = next_sequence(store, kind, project, area)
    _record_high_water(store, _scope_key(kind, project, area), int(sequence))
    return ids.format_id(kind, project, area, sequence)
