"""
Search and discovery over the record store.

Scoring:
  - query found anywhere in the serialized record: 100
  - query also found in the title:                 +100
  - fuzzy mode, no substring hit: share of query words found * 50
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional

from .ids import Kind
from .records import DecisionRecord, Record, RecordStore, RiskRecord

HIGHLIGHT_MARGIN = 20
SIMILAR_LIMIT = 5


@dataclass
class SearchHit:
    record: Record
    score: float
    highlight: str = ""


@dataclass
class Related:
    decision: DecisionRecord
    linked: List[DecisionRecord] = field(default_factory=list)
    risks: List[RiskRecord] = field(default_factory=list)
    similar: List[DecisionRecord] = field(default_factory=list)


def _score(record: Record, query: str, fuzzy: bool) -> Optional[SearchHit]:
    needle = query.lower()
    haystack = json.dumps(record.to_dict(), ensure_ascii=False).lower()

    if needle in haystack:
        score = 100.0
        highlight = ""
        pos = record.title.lower().find(needle)
        if pos >= 0:
            score += 100
            start = max(0, pos - HIGHLIGHT_MARGIN)
            end = min(len(record.title), pos + len(needle) + HIGHLIGHT_MARGIN)
            highlight = record.title[start:end]
        return SearchHit(record=record, score=score, highlight=highlight)

    if fuzzy:
        words = needle.split()
        if not words:
            return None
        matches = sum(1 for w in words if w in haystack)
        if matches:
            return SearchHit(record=record, score=matches / len(words) * 50)

    return None


def search(
    store: RecordStore,
    query: str,
    fuzzy: bool = False,
    kind: Optional[Kind] = None,
    status: Optional[str] = None,
) -> List[SearchHit]:
    """Rank records against ``query``, best first. Ties keep store order."""
    records: List[Record] = []
    if kind in (None, Kind.DECISION):
        records.extend(store.decisions())
    if kind in (None, Kind.RISK):
        records.extend(store.risks())
    if status:
        records = [r for r in records if r.status == status]

    hits = [hit for hit in (_score(r, query, fuzzy) for r in records) if hit is not None]
    return sorted(hits, key=lambda h: h.score, reverse=True)


def related(store: RecordStore, decision_id: str) -> Optional[Related]:
    decisions = store.decisions()
    by_id = {d.decision_id: d for d in decisions}
    decision = by_id.get(decision_id)
    if decision is None:
        return None

    result = Related(decision=decision)
    for ref in decision.linked_decision_ids:
        if ref in by_id:
            result.linked.append(by_id[ref])

    result.risks = [r for r in store.risks() if decision_id in r.linked_decisions]

    if decision.tags:
        tags = set(decision.tags)
        result.similar = [
            d for d in decisions
            if d.decision_id != decision_id and tags.intersection(d.tags)
        ][:SIMILAR_LIMIT]

    return result
