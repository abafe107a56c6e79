#!/usr/bin/env python3
"""
Taxonomy Engine CLI.

Usage:
  python3 taxonomy_engine/cli.py propagate --parent-type tactic --id T1 --client C1 --campaign CMP1
  python3 taxonomy_engine/cli.py render --template "[CA_Name:display_fr]" --context ctx.json
  python3 taxonomy_engine/cli.py validate --template "<[PL_Product:code]_[PL_Channel:code]>"
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import asyncio
import json

from dotenv import load_dotenv


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(description="Taxonomy Engine CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ── propagate ──
    propagate_parser = subparsers.add_parser("propagate", help="Regenerate taxonomies under a changed entity")
    propagate_parser.add_argument("--parent-type", required=True,
                                  choices=["campaign", "tactic", "placement"], help="Changed entity type")
    propagate_parser.add_argument("--id", required=True, help="Changed entity id")
    propagate_parser.add_argument("--client", required=True, help="Client id")
    propagate_parser.add_argument("--campaign", default=None, help="Owning campaign id (tactic/placement)")
    propagate_parser.add_argument("--config", default=None, help="Config YAML path")
    propagate_parser.add_argument("--force", action="store_true", help="Ignore manual taxonomy values")
    propagate_parser.add_argument("--strict", action="store_true", help="Fail on precondition errors")
    propagate_parser.add_argument("--output", default=None, help="Write the result JSON to this file")

    # ── render ──
    render_parser = subparsers.add_parser("render", help="Render one level template from a context file")
    render_parser.add_argument("--template", required=True, help="Level template string")
    render_parser.add_argument("--context", required=True, help="Context JSON file")
    render_parser.add_argument("--config", default=None, help="Config YAML path")
    render_parser.add_argument("--creative", action="store_true", help="Resolve in creative mode")

    # ── validate ──
    validate_parser = subparsers.add_parser("validate", help="Check a template's variables and formats")
    validate_parser.add_argument("--template", required=True, help="Level template string")
    validate_parser.add_argument("--level", type=int, default=1, help="Taxonomy level (1-6)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "propagate":
        sys.exit(cmd_propagate(args))
    elif args.command == "render":
        sys.exit(cmd_render(args))
    elif args.command == "validate":
        sys.exit(cmd_validate(args))


def cmd_propagate(args) -> int:
    """Run a propagation and print its result."""
    from taxonomy_engine.core.config import load_config, build_store
    from taxonomy_engine.core.errors import TaxonomyEngineError, PreconditionError
    from taxonomy_engine.core.logger import EngineLogger
    from taxonomy_engine.core.types import ParentData, RunStatus
    from taxonomy_engine.core.utils import write_json
    from taxonomy_engine.orchestrator.propagation import TaxonomyPropagator

    try:
        config = load_config(args.config)
    except TaxonomyEngineError as e:
        _error_json(f"Config error: {e}")
        return 1

    parent = ParentData(id=args.id, client_id=args.client, campaign_id=args.campaign)
    logger = EngineLogger(run_id=f"{args.parent_type}_{args.id}")

    async def run():
        store = build_store(config, logger)
        try:
            propagator = TaxonomyPropagator(store, logger,
                                            force_regeneration=config.force_regeneration)
            return await propagator.update_taxonomies(
                args.parent_type, parent, force_regeneration=args.force, strict=args.strict)
        finally:
            await store.close()

    try:
        result = asyncio.run(run())
    except PreconditionError as e:
        _error_json(f"Precondition failed: {e}")
        return 2
    except TaxonomyEngineError as e:
        _error_json(f"Propagation error: {e}")
        return 1

    summary = result.to_dict()
    if args.output:
        write_json(summary, args.output)
    print(json.dumps({"event": "result", **summary}, ensure_ascii=False), flush=True)
    return 2 if result.status == RunStatus.PRECONDITION_FAILED.value else 0


def cmd_render(args) -> int:
    """Render one template against a JSON context."""
    from taxonomy_engine.core.config import load_config, build_store
    from taxonomy_engine.core.errors import TaxonomyEngineError
    from taxonomy_engine.core.logger import EngineLogger
    from taxonomy_engine.core.utils import read_json
    from taxonomy_engine.engine.parser import generate_level_string
    from taxonomy_engine.engine.variables import resolve_variable
    from taxonomy_engine.lookup.cache import LookupCache
    from taxonomy_engine.lookup.resolver import ShortcodeResolver

    try:
        config = load_config(args.config)
    except TaxonomyEngineError as e:
        _error_json(f"Config error: {e}")
        return 1

    try:
        data = read_json(args.context)
    except FileNotFoundError:
        _error_json(f"Context file not found: {args.context}")
        return 1
    except json.JSONDecodeError as e:
        _error_json(f"Invalid context JSON: {e}")
        return 1

    logger = EngineLogger()

    async def run():
        store = build_store(config, logger)
        try:
            context = _build_context(data, ShortcodeResolver(store, LookupCache(), logger),
                                     config.force_regeneration)

            async def resolve(name, fmt):
                return await resolve_variable(name, fmt, context, args.creative)

            return await generate_level_string(args.template, resolve)
        finally:
            await store.close()

    try:
        rendered = asyncio.run(run())
    except TaxonomyEngineError as e:
        _error_json(f"Render error: {e}")
        return 1

    print(json.dumps({"result": rendered}, ensure_ascii=False), flush=True)
    return 0


def cmd_validate(args) -> int:
    """Print the parsed structure of a template."""
    from taxonomy_engine.engine.parser import parse_structure

    structure = parse_structure(args.template, args.level)
    print(json.dumps(structure.to_dict(), indent=2, ensure_ascii=False))
    return 0 if structure.is_valid else 1


def _build_context(data: dict, resolver, force_regeneration: bool = False):
    """Turn a context JSON document into a ResolutionContext."""
    from taxonomy_engine.core.types import Campaign, Tactic, Placement, Creative
    from taxonomy_engine.engine.variables import ResolutionContext

    client_id = str(data.get("clientId") or "")
    campaign = data.get("campaign")
    tactic = data.get("tactic")
    placement = data.get("placement")
    creative = data.get("creative")
    placement_id = str((placement or {}).get("id") or "")
    return ResolutionContext(
        client_id=client_id,
        resolver=resolver,
        campaign=Campaign(str(campaign.get("id") or ""), client_id, campaign) if campaign else None,
        tactic=Tactic(str(tactic.get("id") or ""), tactic) if tactic else None,
        placement=Placement.from_document(placement_id, placement) if placement else None,
        creative=(Creative.from_document(str(creative.get("id") or ""), placement_id, creative)
                  if creative else None),
        force_regeneration=force_regeneration,
    )


def _error_json(message: str) -> None:
    """Print error as JSON log line to stdout."""
    print(json.dumps({
        "event": "log", "level": "error", "entity": None,
        "message": message,
    }, ensure_ascii=False), flush=True)


if __name__ == "__main__":
    main()
