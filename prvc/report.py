"""
Rendering of command results: plain text for the terminal, YAML or JSON for
tools that consume the output.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .migrate import MigrationResult
from .records import DecisionRecord, Record
from .search import Related, SearchHit
from .validate import ValidationResult

FORMATS = ("text", "yaml", "json")
RULE = "─" * 60


def format_yaml(data: Any) -> str:
    return yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False, width=120)


def format_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def render(data: Any, fmt: str) -> str:
    if fmt == "yaml":
        return format_yaml(data)
    return format_json(data)


def _indent(text: str, prefix: str = "  ") -> str:
    return "\n".join(f"{prefix}{line}" for line in (text or "").splitlines())


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validation_text(result: ValidationResult, root: Path, mode: str) -> str:
    lines = [f"Validated {result.decision_count} decision(s) and {result.risk_count} risk(s)", ""]

    if result.errors:
        lines.append(f"✗ {len(result.errors)} error(s) found:")
        lines.append("")
        for i, finding in enumerate(result.errors, 1):
            doc = finding.to_dict(root)
            lines.append(f"  {i}. {doc['file']}")
            lines.append(f"     {finding.message}")
            if finding.details:
                lines.append(_indent(format_json(finding.details), "     "))
            lines.append("")

    if result.warnings:
        lines.append(f"⚠ {len(result.warnings)} warning(s) found:")
        lines.append("")
        for i, finding in enumerate(result.warnings, 1):
            lines.append(f"  {i}. {finding.to_dict(root)['file']}")
            lines.append(f"     {finding.message}")
            lines.append("")

    if result.valid and not result.warnings:
        lines.append("✓ All records are valid!")
    elif result.valid:
        lines.append("✓ No errors found")
        lines.append(f"⚠ {len(result.warnings)} warning(s) - please review")
    elif mode == "fail":
        lines.append("✗ Validation failed")
        lines.append("Mode: fail - exiting with error code")
    else:
        lines.append("✗ Validation failed")
        lines.append("Mode: warn - exiting with success despite errors")
        lines.append('(Set validation.mode to "fail" in the config or use --mode fail to block on errors)')

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------


def migration_dict(result: MigrationResult, root: Path) -> Dict[str, Any]:
    return {
        "decisions": result.decision_count,
        "risks": result.risk_count,
        "created": list(result.created_files),
        "updated": list(result.updated_files),
        "skipped": [
            {"file": _rel(s.path, root), "reason": s.reason} for s in result.skipped
        ],
        "renamed": dict(result.id_map),
    }


def migration_text(result: MigrationResult, root: Path) -> str:
    lines = [
        "Updated records:",
        f"  Decisions: {result.decision_count}",
        f"  Risks:     {result.risk_count}",
        f"  Created:   {len(result.created_files)} file(s)",
        f"  Updated:   {len(result.updated_files)} file(s)",
    ]
    if result.id_map:
        lines.append("")
        lines.append("Renamed decisions:")
        for old, new in result.id_map.items():
            lines.append(f"  {old} -> {new}")
    if result.skipped:
        lines.append("")
        lines.append(f"Skipped {len(result.skipped)} file(s):")
        for s in result.skipped:
            lines.append(f"  {_rel(s.path, root)}: {s.reason}")
    return "\n".join(lines)


def _rel(path: Path, root: Path) -> str:
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def record_text(record: Record) -> str:
    lines = ["", record.title, "", RULE, "", f"ID:       {record.record_id}", f"Status:   {record.status}"]

    if isinstance(record, DecisionRecord):
        lines += ["", "Context:", _indent(record.context), "", "Decision:", _indent(record.decision)]
        if record.consequences:
            lines += ["", "Consequences:", _indent(record.consequences)]
        if record.risk:
            lines += ["", "Risk Assessment:", _indent(record.risk)]
        if record.links:
            lines += ["", "Links:"]
            for link in record.links:
                lines.append(f"  • [{link.type}] {link.url}")
                if link.title:
                    lines.append(f"    {link.title}")
    else:
        lines.append(f"Severity: {record.severity}")
        lines += ["", "Description:", _indent(record.description)]
        if record.mitigation:
            lines += ["", "Mitigation:", _indent(record.mitigation)]
        if record.owner:
            lines += ["", f"Owner: {record.owner}"]
        if record.linked_decisions:
            lines += ["", "Linked Decisions:"]
            lines += [f"  • {dec_id}" for dec_id in record.linked_decisions]

    if record.tags:
        lines += ["", f"Tags: {', '.join(record.tags)}"]
    if record.date_created:
        lines += ["", f"Created: {record.date_created}"]

    lines += ["", RULE, ""]
    return "\n".join(lines)


def search_text(hits: List[SearchHit], query: str, limit: int, fuzzy: bool) -> str:
    lines = [f'Found {len(hits)} result(s) for "{query}"', ""]
    if not hits:
        lines.append("  No matches found.")
        if not fuzzy:
            lines.append("  Try using --fuzzy for approximate matching.")
        return "\n".join(lines)

    for i, hit in enumerate(hits[:limit], 1):
        record = hit.record
        lines.append(f"{i}. [{record.kind.value}] {record.title}")
        lines.append(f"   ID: {record.record_id} | Status: {record.status} | Score: {hit.score:.0f}")
        if hit.highlight:
            lines.append(f"   ...{hit.highlight}...")
        lines.append("")

    if len(hits) > limit:
        lines.append(f"  Showing {limit} of {len(hits)} results. Use --limit to see more.")
    return "\n".join(lines)


def search_dict(hits: List[SearchHit], limit: int) -> List[Dict[str, Any]]:
    return [
        {
            "id": hit.record.record_id,
            "type": hit.record.kind.value,
            "title": hit.record.title,
            "status": hit.record.status,
            "score": hit.score,
        }
        for hit in hits[:limit]
    ]


def related_text(rel: Related) -> str:
    lines = [f"Related to {rel.decision.decision_id}", rel.decision.title, ""]

    if rel.linked:
        lines.append("Linked Decisions:")
        lines += [f"  • {d.decision_id}: {d.title}" for d in rel.linked]
        lines.append("")

    if rel.risks:
        lines.append("Related Risks:")
        lines += [f"  ⚠ {r.risk_id}: {r.title} [{r.severity}]" for r in rel.risks]
        lines.append("")

    if rel.similar:
        own = set(rel.decision.tags)
        lines.append("Similar Decisions (by tags):")
        for d in rel.similar:
            common = [t for t in d.tags if t in own]
            lines.append(f"  • {d.decision_id}: {d.title}")
            lines.append(f"    Tags: {', '.join(common)}")
        lines.append("")

    if not (rel.linked or rel.risks or rel.similar):
        lines.append("  Nothing related found.")

    return "\n".join(lines)


def related_dict(rel: Related) -> Dict[str, Any]:
    return {
        "decision": rel.decision.decision_id,
        "linked": [d.decision_id for d in rel.linked],
        "risks": [r.risk_id for r in rel.risks],
        "similar": [d.decision_id for d in rel.similar],
    }
