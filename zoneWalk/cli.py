"""zonewalk command line: delegation trees, zone apexes, records and RDAP."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from zoneWalk.config import ZoneWalkConfig
from zoneWalk.logging_config import setup_logging
from zoneWalk.resolver.errors import ZoneWalkError
from zoneWalk.resolver.models import DetailedRecordSet, RdapError, RegistrationInfo, ZoneNode
from zoneWalk.resolver.state import ResolverState

console = Console()
logger = setup_logging("cli", enable_console=False)


def format_ttl(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds} seconds"
    if seconds < 3600:
        return f"{seconds // 60} minutes"
    if seconds < 86400:
        return f"{seconds // 3600} hours"
    return f"{seconds // 86400} days"


def rname_to_email(rname: str) -> str:
    """hostmaster.example.com. -> hostmaster@example.com"""
    return rname.rstrip(".").replace(".", "@", 1)


def _node_label(node: ZoneNode) -> str:
    label = f"[bold]{node.zone_name}[/bold] [dim](depth {node.depth})[/dim]"
    if node.is_delegated:
        label += " [green]delegated[/green]"
    if node.is_cname:
        label += f" [yellow]CNAME -> {node.cname_target}[/yellow]"
    return label


def build_tree(root: ZoneNode) -> Tree:
    """Rich tree of zones; folded names and nameservers hang under each zone."""

    def add(branch: Tree, node: ZoneNode) -> None:
        folded = [d for d in node.domains if d != node.zone_name]
        if folded:
            branch.add("[cyan]domains:[/cyan] " + ", ".join(folded))
        if node.nameservers:
            branch.add("[magenta]ns:[/magenta] " + ", ".join(node.nameservers))
        for child in node.children:
            add(branch.add(_node_label(child)), child)

    tree = Tree(_node_label(root))
    add(tree, root)
    return tree


def build_records_table(domain: str, records: DetailedRecordSet) -> Table:
    table = Table(title=f"DNS records for {domain}")
    table.add_column("Type", style="bold")
    table.add_column("Name")
    table.add_column("TTL", justify="right")
    table.add_column("Data", overflow="fold")

    if records.soa is not None:
        soa = records.soa
        table.add_row("SOA", soa.name, f"{soa.ttl} ({format_ttl(soa.ttl)})", soa.data)
    for field in ("ns", "a", "aaaa", "cname", "mx", "txt"):
        for answer in getattr(records, field) or []:
            table.add_row(field.upper(), answer.name, f"{answer.ttl} ({format_ttl(answer.ttl)})", answer.data)
    return table


def build_soa_table(records: DetailedRecordSet) -> Optional[Table]:
    if records.soa is None or records.soa.parsed is None:
        return None
    soa = records.soa.parsed
    table = Table(title="SOA", show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Primary nameserver", soa.mname)
    table.add_row("Responsible person", f"{soa.rname} ({rname_to_email(soa.rname)})")
    table.add_row("Serial", str(soa.serial))
    table.add_row("Refresh", f"{soa.refresh}s ({format_ttl(soa.refresh)})")
    table.add_row("Retry", f"{soa.retry}s ({format_ttl(soa.retry)})")
    table.add_row("Expire", f"{soa.expire}s ({format_ttl(soa.expire)})")
    table.add_row("Negative cache TTL", f"{soa.minimum}s ({format_ttl(soa.minimum)})")
    return table


def build_registration_table(info: RegistrationInfo) -> Table:
    table = Table(title=f"Registration for {info.domain}", show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Registrar", info.registrar or "-")
    table.add_row("Registered", info.registration_date or "-")
    table.add_row("Expires", info.expiration_date or "-")
    table.add_row("Status", ", ".join(info.status) or "-")
    table.add_row("Nameservers", ", ".join(info.nameservers) or "-")
    return table


def _dump(data: object) -> None:
    console.print_json(json.dumps(data))


async def run(args: argparse.Namespace, state: ResolverState) -> int:
    endpoint = state.config.endpoint_for(args.resolver)
    logger.info(
        f"Running {args.command} for {args.domain}",
        extra={"domain": args.domain, "endpoint": endpoint, "action": args.command}
    )

    if args.command == "tree":
        tree = await state.hierarchy.resolve_hierarchy(args.domain, endpoint)
        if args.json:
            _dump(tree.model_dump())
        else:
            console.print(build_tree(tree))
        return 0

    if args.command == "apex":
        apex = await state.hierarchy.find_zone_apex(args.domain, endpoint)
        if args.json:
            _dump({"domain": args.domain, "zone_apex": apex})
        else:
            console.print(apex, highlight=False)
        return 0

    if args.command == "records":
        records = await state.records.fetch_detailed_records(args.domain, endpoint)
        if args.json:
            _dump(records.model_dump(exclude_none=True))
            return 0
        console.print(build_records_table(args.domain, records))
        soa_table = build_soa_table(records)
        if soa_table is not None:
            console.print(soa_table)
        return 0

    # whois
    apex = await state.hierarchy.find_zone_apex(args.domain, endpoint)
    result = await state.rdap.query_registration(apex)
    if isinstance(result, RdapError):
        if args.json:
            _dump(result.model_dump())
        else:
            console.print(f"[red]{result.error}")
        return 1
    if args.json:
        _dump(result.model_dump())
    else:
        console.print(build_registration_table(result))
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="zonewalk", description="Walk the DNS delegation hierarchy over DoH")
    parser.add_argument("--config", help="Path to zonewalk YAML config (defaults to $ZONEWALK_CONFIG)")
    parser.add_argument("--resolver", help="Resolver id from config, or a DoH JSON endpoint URL")
    parser.add_argument("--json", action="store_true", help="Print raw JSON instead of tables")
    parser.add_argument("command", choices=["tree", "apex", "records", "whois"])
    parser.add_argument("domain")
    return parser.parse_args(argv)


async def main_async(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = ZoneWalkConfig.from_env(args.config)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{exc}")
        return 1

    state = ResolverState.create(config)
    try:
        return await run(args, state)
    except ZoneWalkError as exc:
        logger.warning(
            f"{args.command} failed for {args.domain}: {exc.message}",
            extra={"domain": args.domain, "outcome": "error", "error_type": type(exc).__name__}
        )
        console.print(f"[red]{exc.message}")
        return 1
    except ValueError as exc:
        console.print(f"[red]{exc}")
        return 1
    finally:
        await state.close()


def main() -> None:
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
