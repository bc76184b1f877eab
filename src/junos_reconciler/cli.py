#!/usr/bin/env python3
"""junos-reconciler command line.

Usage:
    junos-reconciler [--config DEVICES] [--device ID] <command> ...

Resource files are YAML documents, one resource per document:

    resource: bgp_group
    name: G1
    hold_time: 30
    passive: true

Option names are the field names of the resource options; a field named
after a Python keyword is written without its trailing underscore, e.g.
``import: [policy-in]`` for ``import_``.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from .config import DeviceInventory
from .engine import Reconciler, StatementBuilder, from_dict, to_dict
from .errors import ReconcileError, NotFoundError
from .resources import RESOURCE_TYPES, get_resource_type
from .utils.audit_log import setup_audit_logging, get_recent_changes
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def load_resources(path: Path) -> list[tuple[Any, Any]]:
    """Load (resource type, options) pairs from a YAML file.

    Raises:
        ValueError: If a document has no known ``resource`` or unknown fields
    """
    with open(path) as f:
        documents = [doc for doc in yaml.safe_load_all(f) if doc]

    resources = []
    for index, document in enumerate(documents, start=1):
        if not isinstance(document, dict) or "resource" not in document:
            raise ValueError(f"document {index} in {path} has no resource type")
        data = dict(document)
        try:
            rtype = get_resource_type(str(data.pop("resource")))
        except KeyError as e:
            raise ValueError(f"document {index} in {path}: {e.args[0]}") from e
        resources.append((rtype, from_dict(rtype.options, data)))
    return resources


def _dump(data: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2))
    else:
        print(yaml.safe_dump(data, sort_keys=False), end="")


def _state(rtype: Any, options: Any) -> dict:
    return {"resource": rtype.name, **to_dict(options)}


async def _run(args: argparse.Namespace, inventory: DeviceInventory) -> Any:
    reconciler = Reconciler(inventory.get_context(args.device))

    if args.command == "import":
        rtype = get_resource_type(args.type)
        state = await reconciler.import_id(rtype, args.id)
        return _state(rtype, state)

    results = []
    for rtype, options in load_resources(args.file):
        if args.command == "apply":
            results.append((await reconciler.create(rtype, options)).to_dict())
        elif args.command == "update":
            state = await reconciler.read(rtype, options)
            if state is None:
                raise NotFoundError(
                    f"{rtype.describe(options)} doesn't exist",
                    rtype.name, rtype.identity.compose(options),
                )
            results.append((await reconciler.update(rtype, state, options)).to_dict())
        elif args.command == "delete":
            results.append((await reconciler.delete(rtype, options)).to_dict())
        elif args.command == "read":
            state = await reconciler.read(rtype, options)
            results.append(_state(rtype, state) if state is not None else None)
    return results


def _plan(args: argparse.Namespace) -> list[dict]:
    builder = StatementBuilder()
    plans = []
    for rtype, options in load_resources(args.file):
        plans.append({
            "resource": rtype.name,
            "id": rtype.identity.compose(options),
            "statements": rtype.set_statements(options, builder),
        })
    return plans


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="junos-reconciler",
        description="Translate and reconcile Junos configuration resources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show the statements a create would send
    junos-reconciler plan bgp.yaml

    # Create resources on a device from the inventory
    junos-reconciler --device mx-core apply bgp.yaml

    # Read an existing resource by identifier
    junos-reconciler --device mx-core import bgp_group "G1_-_default"

Resource files:
    One YAML document per resource: "resource: <type>" plus option fields.
    Fields named after Python keywords drop the underscore (import_ -> import).

Environment:
    JUNOS_PASSWORD               Device credentials
    JUNOS_RECONCILER_INVENTORY   Device inventory file
    JUNOS_RECONCILER_LOG_LEVEL   Console log level (default: INFO)
""",
    )
    parser.add_argument("--config", type=str, help="Device inventory file (default: search devices.yaml)")
    parser.add_argument("--device", type=str, help="Device ID from the inventory")
    parser.add_argument("--log-dir", type=str, help="Audit log directory (default: ~/.junos-reconciler)")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to the console")

    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("plan", "Print set statements without contacting a device"),
        ("apply", "Create resources"),
        ("update", "Replace resources with the given state"),
        ("read", "Read resources back from the device"),
        ("delete", "Delete resources"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("file", type=Path, help="YAML resource file")

    import_cmd = sub.add_parser("import", help="Read a resource by its identifier")
    import_cmd.add_argument("type", help="Resource type, e.g. bgp_group")
    import_cmd.add_argument("id", help="Resource identifier, e.g. G1_-_default")

    sub.add_parser("types", help="List resource types and identifier formats")

    changes = sub.add_parser("changes", help="Show recent audited changes")
    changes.add_argument("--type", dest="resource_type", help="Filter by resource type")
    changes.add_argument("--limit", type=int, default=20, help="Maximum records (default: 20)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(console=args.verbose)
    audit_file = setup_audit_logging(args.log_dir)

    try:
        if args.command == "types":
            _dump([
                {"resource": rtype.name, "id": rtype.identity.format, "description": rtype.description}
                for rtype in RESOURCE_TYPES.values()
            ], args.json)
            return 0

        if args.command == "changes":
            records = get_recent_changes(
                audit_file,
                device_id=args.device,
                resource_type=args.resource_type,
                limit=args.limit,
            )
            _dump([vars(record) for record in records], args.json)
            return 0

        if args.command == "plan":
            _dump(_plan(args), args.json)
            return 0

        if not args.device:
            logger.error("--device is required")
            print("error: --device is required", file=sys.stderr)
            return 1

        inventory = DeviceInventory(args.config)
        _dump(asyncio.run(_run(args, inventory)), args.json)
        return 0

    except ReconcileError as e:
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (ValueError, KeyError, FileNotFoundError) as e:
        message = e.args[0] if isinstance(e, KeyError) and e.args else e
        logger.error(str(message))
        print(f"error: {message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
