#!/usr/bin/env python3
"""
prvc — manage the repository's decision and risk ledger.

Usage:
    # Set up provenance/ in the current repository
    prvc init --app-code ACME --area WEB

    # Record a decision / a risk
    prvc add decision "Use PostgreSQL" --context "..." --decision "..."
    prvc add risk "Vendor lock-in" --severity high --linked-decision DEC-ACME-WEB-000001

    # Audit every record (exit code follows validation.mode)
    prvc validate --mode fail

    # Upgrade v1 records (DEC-000042, RSK-...) to the v2 id scheme
    prvc migrate --app-code ACME --area WEB
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional

from . import __version__, console, ids, report, sequence
from .config import (
    DEFAULT_AREA,
    DEFAULT_PROJECT,
    VALIDATION_MODES,
    get_value,
    load_config,
    normalize_code,
    normalize_config,
    require_config,
    save_config,
)
from .errors import ProvenanceError, RecordNotFoundError
from .ids import Kind
from .ledger import add_decision, add_risk
from .migrate import migrate
from .records import (
    DECISION_STATUSES,
    LINK_TYPES,
    RISK_SEVERITIES,
    RISK_STATUSES,
    Link,
    RecordStore,
)
from .scaffold import ensure_scaffold, register_codes
from .search import related, search
from .validate import exit_code, validate


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_init(args: argparse.Namespace) -> int:
    root = args.root
    existing = load_config(root)
    if existing is not None and not args.force:
        console.warn("ProvenanceCode is already initialized here (use --force to rewrite the config).")
        return 1

    project = normalize_code(args.app_code, "project")
    area = normalize_code(args.area, "area")
    config = normalize_config(None, project, area)
    config.validation_mode = args.mode

    console.banner("ProvenanceCode — init")
    created = ensure_scaffold(root, config)
    save_config(root, config)
    register_codes(root, project, area)

    for rel in created:
        console.item(rel, "+")
    console.ok(f"Config written (scope {project}-{area}, mode {config.validation_mode})")
    print()
    console.info('Next: prvc add decision "Title" --context "..." --decision "..."')
    return 0


def cmd_migrate(args: argparse.Namespace) -> int:
    root = args.root
    if args.format == "text":
        console.banner("ProvenanceCode — migrate v1 → v2")

    result = migrate(root, args.app_code, args.area)

    if args.format != "text":
        print(report.render(report.migration_dict(result, root), args.format))
        return 0

    print(report.migration_text(result, root))
    print()
    if not result.changed:
        console.ok("Already up to date")
        return 0
    console.ok("Migration completed")
    console.info("Next: prvc validate")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    root = args.root
    config = require_config(root)
    mode = args.mode or config.validation_mode

    result = validate(root, config, check_refs=args.check_references or None)

    if args.format == "text":
        console.banner("ProvenanceCode — validate")
        print(report.validation_text(result, root, mode))
        print()
    else:
        doc = result.to_dict(root)
        doc["mode"] = mode
        print(report.render(doc, args.format))

    return exit_code(result, mode)


def cmd_next_id(args: argparse.Namespace) -> int:
    root = args.root
    config = require_config(root)
    kind = Kind(args.kind)
    project = normalize_code(args.app_code or config.default_project, "project")
    area = normalize_code(args.area or config.default_area, "area")

    store = RecordStore(root, config)
    seq = sequence.next_sequence(store, kind, project, area)
    if args.format == "sequence":
        print(seq)
    else:
        print(ids.format_id(kind, project, area, seq))
    return 0


def _parse_link(value: str) -> Link:
    kind, sep, url = value.partition(":")
    if not sep or kind not in LINK_TYPES or not url:
        raise argparse.ArgumentTypeError(f"expected TYPE:URL with TYPE in {', '.join(LINK_TYPES)}")
    return Link(type=kind, url=url)


def cmd_add(args: argparse.Namespace) -> int:
    root = args.root
    config = require_config(root)

    allowed = DECISION_STATUSES if args.kind == "decision" else RISK_STATUSES
    if args.status and args.status not in allowed:
        console.error(f"A {args.kind} status must be one of: {', '.join(allowed)}")
        return 1

    if args.kind == "decision":
        record = add_decision(
            root, config,
            title=args.title,
            context=args.context,
            decision=args.decision,
            consequences=args.consequences,
            status=args.status or "draft",
            project=args.app_code,
            area=args.area,
            tags=args.tag,
            links=args.link,
        )
    else:
        record = add_risk(
            root, config,
            title=args.title,
            description=args.description,
            severity=args.severity,
            status=args.status or "open",
            linked_decisions=args.linked_decision,
            mitigation=args.mitigation,
            owner=args.owner,
            project=args.app_code,
            area=args.area,
            tags=args.tag,
        )

    store = RecordStore(root, config)
    console.ok(f"{args.kind.capitalize()} recorded: {record.record_id}")
    console.info(f"File: {store.relative(store.path_for(record.kind, record.record_id))}")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    config = require_config(args.root)
    store = RecordStore(args.root, config)
    kind = Kind(args.type) if args.type else None
    hits = search(store, args.query, fuzzy=args.fuzzy, kind=kind, status=args.status)

    if args.format == "text":
        print(report.search_text(hits, args.query, args.limit, args.fuzzy))
    else:
        print(report.render(report.search_dict(hits, args.limit), args.format))
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    config = require_config(args.root)
    record = RecordStore(args.root, config).find(args.id)
    if record is None:
        raise RecordNotFoundError(args.id)

    if args.format == "text":
        print(report.record_text(record))
    else:
        print(report.render(record.to_dict(), args.format))
    return 0


def cmd_related(args: argparse.Namespace) -> int:
    config = require_config(args.root)
    rel = related(RecordStore(args.root, config), args.id)
    if rel is None:
        raise RecordNotFoundError(args.id)

    if args.format == "text":
        print(report.related_text(rel))
    else:
        print(report.render(report.related_dict(rel), args.format))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    root = args.root
    config = require_config(root)

    if args.action == "get":
        if not args.key:
            console.error("config get needs a KEY, e.g. validation.mode")
            return 1
        try:
            value = get_value(config, args.key)
        except KeyError:
            console.error(f"Key not found: {args.key}")
            return 1
        print(report.format_json(value))
        return 0

    if args.action == "set":
        changed = False
        if args.app_code:
            config.default_project = normalize_code(args.app_code, "project")
            console.ok(f"Set project code: {config.default_project}")
            changed = True
        if args.area:
            config.default_area = normalize_code(args.area, "area")
            console.ok(f"Set default subproject: {config.default_area}")
            changed = True
        if args.mode:
            config.validation_mode = args.mode
            console.ok(f"Set validation mode: {args.mode}")
            changed = True
        if args.check_references is not None:
            config.check_references = args.check_references == "on"
            console.ok(f"Set reference checking: {args.check_references}")
            changed = True
        if not changed:
            console.warn("No changes made. Use --app-code, --area, --mode or --check-references.")
            return 0
        save_config(root, config)
        if args.app_code or args.area:
            register_codes(root, config.default_project, config.default_area)
        console.info("Configuration saved.")
        return 0

    print(report.format_yaml(config.to_dict()).rstrip())
    return 0


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _add_format(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format", "-f",
        choices=report.FORMATS,
        default="text",
        help="Output format (default: text).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prvc",
        description="ProvenanceCode — decision and risk records for this repository.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              prvc init --app-code ACME --area WEB
              prvc next-id decision
              prvc add decision "Use PostgreSQL" --context "Need JSON support"
              prvc validate --mode fail --check-references
              prvc migrate --app-code ACME --area WEB
              prvc search postgres --type decision
        """),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--root", "-C",
        type=Path,
        default=Path.cwd(),
        help="Repository root holding provenance/ (default: current directory).",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log diagnostics to stderr.")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("init", help="Create provenance/ and its config.")
    p.add_argument("--app-code", default=DEFAULT_PROJECT, help="Project code for new ids (2-4 chars).")
    p.add_argument("--area", default=DEFAULT_AREA, help="Default area/subproject code (2-4 chars).")
    p.add_argument("--mode", choices=VALIDATION_MODES, default="warn", help="Validation mode.")
    p.add_argument("--force", action="store_true", help="Rewrite an existing config.")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("migrate", help="Upgrade v1 records to the v2 id scheme (idempotent).")
    p.add_argument("--app-code", default=DEFAULT_PROJECT, help="Fallback project code for legacy ids.")
    p.add_argument("--area", default=DEFAULT_AREA, help="Fallback subproject code for legacy ids.")
    _add_format(p)
    p.set_defaults(func=cmd_migrate)

    p = sub.add_parser("validate", help="Validate every decision and risk record.")
    p.add_argument("--mode", choices=VALIDATION_MODES, help="Override validation.mode from the config.")
    p.add_argument(
        "--check-references",
        action="store_true",
        help="Also require linked decisions to exist in the store.",
    )
    _add_format(p)
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("next-id", help="Print the next free id of a scope.")
    p.add_argument("kind", choices=[k.value for k in Kind])
    p.add_argument("--app-code", help="Project code (default: from config).")
    p.add_argument("--area", help="Area code (default: from config).")
    p.add_argument("--format", choices=["id", "sequence"], default="id")
    p.set_defaults(func=cmd_next_id)

    p = sub.add_parser("add", help="Create a new decision or risk record.")
    p.add_argument("kind", choices=[k.value for k in Kind])
    p.add_argument("title")
    p.add_argument("--app-code", help="Project code (default: from config).")
    p.add_argument("--area", help="Area code (default: from config).")
    p.add_argument("--status", choices=sorted(set(DECISION_STATUSES) | set(RISK_STATUSES)))
    p.add_argument("--tag", action="append", default=[], help="Tag (repeatable).")
    p.add_argument("--context", help="Decision: why is this needed?")
    p.add_argument("--decision", help="Decision: what was decided?")
    p.add_argument("--consequences", help="Decision: what follows from it?")
    p.add_argument("--link", action="append", default=[], type=_parse_link, help="Decision: TYPE:URL (repeatable).")
    p.add_argument("--description", help="Risk: what could go wrong?")
    p.add_argument("--severity", choices=RISK_SEVERITIES, default="medium", help="Risk severity.")
    p.add_argument("--mitigation", help="Risk mitigation.")
    p.add_argument("--owner", help="Risk owner.")
    p.add_argument("--linked-decision", action="append", default=[], help="Risk: linked decision id (repeatable).")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("search", help="Search decisions and risks.")
    p.add_argument("query")
    p.add_argument("--fuzzy", action="store_true", help="Match individual words.")
    p.add_argument("--type", choices=[k.value for k in Kind])
    p.add_argument("--status")
    p.add_argument("--limit", type=int, default=20)
    _add_format(p)
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("show", help="Display a decision or risk.")
    p.add_argument("id")
    _add_format(p)
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("related", help="Find records related to a decision.")
    p.add_argument("id")
    _add_format(p)
    p.set_defaults(func=cmd_related)

    p = sub.add_parser("config", help="Show or change the configuration.")
    p.add_argument("action", nargs="?", choices=["list", "get", "set"], default="list")
    p.add_argument("key", nargs="?", help="Dotted key for 'get', e.g. validation.mode")
    p.add_argument("--app-code")
    p.add_argument("--area")
    p.add_argument("--mode", choices=VALIDATION_MODES)
    p.add_argument("--check-references", choices=["on", "off"])
    p.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not getattr(args, "command", None):
        parser.print_help()
        return 1

    args.root = Path(args.root).resolve()
    try:
        return args.func(args)
    except ProvenanceError as e:
        console.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
