from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from .adapters.static_site import StaticSiteSource
from .config import Settings, load_settings
from .core.storage import JSONFileStorage
from .data.csv_parser import SAMPLE_CSV, export_csv
from .data.generator import generate_organization
from .data.store import OrganizationStore
from .errors import FetchFailure, UXRError
from .logging_config import setup_logging
from .participant.bridge import ParticipantBridge
from .participant.mode import parse_query
from .sharing.exporter import SharingExporter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uxr-prototype", description="Researcher tools for the account group prototype"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser(
        "generate-participants", help="Write one participant file per organization in a CSV"
    )
    gen.add_argument("csv", type=Path, help="CSV with Organization,Account Name columns")
    gen.add_argument("--out", type=Path, help="Output directory for participant files")
    gen.add_argument(
        "--skip", action="append", default=[], help="Organization that already has a file"
    )

    export = sub.add_parser("export", help="Export one stored organization for a participant")
    export.add_argument("organization", nargs="?", help="Organization name (default: current)")
    export.add_argument("--out", type=Path, help="Output directory for the participant file")

    org = sub.add_parser("generate-org", help="Generate an organization with mock accounts")
    org.add_argument("name", help="Organization name")
    org.add_argument("--count", type=int, default=5, help="Number of accounts")
    org.add_argument("--seed", help="Seed for reproducible account names")
    org.add_argument("--add", action="store_true", help="Also add it to local storage")

    open_ = sub.add_parser("open", help="Resolve a prototype URL the way the page would")
    open_.add_argument("url", help="Prototype URL or query string")

    sub.add_parser("scenarios", help="List the canned participant scenarios on the site")

    sub.add_parser("sample-csv", help="Print the sample CSV")
    return parser


def _exporter(settings: Settings, out: Path | None) -> SharingExporter:
    return SharingExporter(
        output_dir=out or Path(settings.participant_dir),
        origin=settings.origin,
        app_path=settings.app_path,
    )


async def _generate(settings: Settings, args: argparse.Namespace) -> int:
    results = await _exporter(settings, args.out).generate_participant_files(
        args.csv.read_text(encoding="utf-8"), skip=args.skip
    )
    for result in results:
        accounts = sum(1 for a in result.payload.accounts if not a.is_aggregate)
        print(f"{result.payload.organization_name}\t{accounts}\t{result.path}\t{result.url}")
    return 0


async def _export(settings: Settings, args: argparse.Namespace) -> int:
    source = StaticSiteSource(settings.base_url)
    try:
        store = OrganizationStore(JSONFileStorage(Path(settings.storage_path)), source)
        await store.initialize()
        org = (
            store.get_organization(args.organization)
            if args.organization
            else store.current_organization
        )
        result = await _exporter(settings, args.out).export_participant_package(org)
    finally:
        await source.close()
    print(result.url)
    return 0


async def _generate_org(settings: Settings, args: argparse.Namespace) -> int:
    org = generate_organization(args.name, args.count, args.seed)
    if args.add:
        source = StaticSiteSource(settings.base_url)
        try:
            store = OrganizationStore(JSONFileStorage(Path(settings.storage_path)), source)
            await store.initialize()
            store.add_organization(org)
        finally:
            await source.close()
    print(export_csv([org]), end="")
    return 0


async def _open(settings: Settings, args: argparse.Namespace) -> int:
    source = StaticSiteSource(settings.base_url)
    try:
        store = OrganizationStore(JSONFileStorage(Path(settings.storage_path)), source)
        await store.initialize()
        bridge = ParticipantBridge(
            store,
            JSONFileStorage(Path(settings.session_path)),
            source,
            default_scenario=settings.default_scenario,
        )
        state = await bridge.run(parse_query(args.url))
    finally:
        await source.close()
    print(f"{state.value}\t{store.current_organization.name}")
    for account in store.current_organization.member_accounts():
        print(f"  {account.id}\t{account.name}")
    return 0


async def _scenarios(settings: Settings, args: argparse.Namespace) -> int:
    source = StaticSiteSource(settings.base_url)
    try:
        scenarios = await source.available_scenarios()
    finally:
        await source.close()
    if not scenarios:
        raise FetchFailure(f"No scenarios available at {settings.base_url}")
    for scenario in scenarios:
        print(f"{scenario['id']}\t{scenario['name']}\t{scenario['description']}")
    return 0


COMMANDS = {
    "generate-participants": _generate,
    "export": _export,
    "generate-org": _generate_org,
    "open": _open,
    "scenarios": _scenarios,
}


def main(argv: list[str] | None = None) -> int:
    log = setup_logging()
    args = build_parser().parse_args(argv)
    settings = load_settings()

    if args.command == "sample-csv":
        print(SAMPLE_CSV)
        return 0
    try:
        return asyncio.run(COMMANDS[args.command](settings, args))
    except (UXRError, OSError) as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
