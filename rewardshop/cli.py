"""Command line helpers for RewardShop."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .app import RewardShopApp
from .config import RewardShopConfig
from .domain.exceptions import RewardShopError
from .domain.pricing import SellPriceInfo
from .loaders import validate_catalog_file
from .migration import MigrationReport
from .validators import validate_app

console = Console()


def _build_app(*, force_migration: bool = False) -> RewardShopApp:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = RewardShopConfig.from_env()
    config.force_migration = config.force_migration or force_migration
    return RewardShopApp(config)


def run_migrate() -> None:
    parser = argparse.ArgumentParser(description="Convert legacy RewardShop data")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild every domain even if its target document already exists",
    )
    args = parser.parse_args()

    async def _run() -> MigrationReport:
        app = _build_app(force_migration=args.force)
        report = await app.init_backend()
        await app.shutdown()
        return report

    report = asyncio.run(_run())
    table = Table(title="Legacy migration")
    table.add_column("Domain")
    table.add_column("Result")
    for name, count in report.migrated.items():
        table.add_row(name, f"[green]{count} record(s) migrated[/green]")
    for name, reason in report.skipped.items():
        table.add_row(name, f"[yellow]skipped: {reason}[/yellow]")
    console.print(table)


def run_points() -> None:
    parser = argparse.ArgumentParser(description="Manage RewardShop point balances")
    parser.add_argument("action", choices=("add", "take", "clear", "check"))
    parser.add_argument("target", help="Player name or id, or * for every player")
    parser.add_argument("amount", type=int, nargs="?", default=0)
    args = parser.parse_args()

    async def _run() -> dict[int, int]:
        app = _build_app()
        await app.init_backend()
        try:
            if args.action == "add":
                return await app.admin.add_points(args.target, args.amount)
            if args.action == "take":
                return await app.admin.take_points(args.target, args.amount)
            if args.action == "clear":
                return await app.admin.clear_points(args.target)
            return app.admin.check_points(args.target)
        finally:
            await app.shutdown()

    try:
        balances = asyncio.run(_run())
    except RewardShopError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)

    table = Table(title=f"Points: {args.action}")
    table.add_column("User")
    table.add_column("Balance" if args.action != "clear" else "Removed", justify="right")
    for user_id, amount in balances.items():
        table.add_row(str(user_id), str(amount))
    console.print(table)


def run_sellable() -> None:
    parser = argparse.ArgumentParser(description="Manage RewardShop sell prices")
    parser.add_argument("action", choices=("setprice", "setskinmult", "removeskin", "show"))
    parser.add_argument("item_ref", help="Item short name")
    parser.add_argument("value", type=float, nargs="?")
    parser.add_argument(
        "--skin", type=int, default=0, help="Skin id for setprice or removeskin (0 = base price)"
    )
    args = parser.parse_args()
    if args.action in {"setprice", "setskinmult"} and args.value is None:
        parser.error(f"{args.action} requires a value")
    if args.action == "removeskin" and args.skin == 0:
        parser.error("removeskin requires --skin")

    async def _run() -> SellPriceInfo:
        app = _build_app()
        await app.init_backend()
        try:
            if args.action == "setprice":
                return await app.admin.set_sell_price(args.item_ref, args.value, skin_id=args.skin)
            if args.action == "setskinmult":
                return await app.admin.set_skin_multiplier(args.item_ref, args.value)
            if args.action == "removeskin":
                return await app.admin.remove_skin_price(args.item_ref, args.skin)
            return app.admin.show_sell_price(args.item_ref)
        finally:
            await app.shutdown()

    try:
        info = asyncio.run(_run())
    except RewardShopError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)

    console.print(f"[bold]{args.item_ref}[/bold]")
    console.print(f"Base price: {info.base_price}")
    console.print(f"Skin multiplier: {info.skin_multiplier}")
    for skin_id, price in sorted(info.skin_overrides.items()):
        console.print(f"  skin {skin_id}: {price}")


def run_validate() -> None:
    parser = argparse.ArgumentParser(description="RewardShop validator")
    parser.add_argument("--catalog", help="Path to catalog JSON file for validation")
    args = parser.parse_args()

    if args.catalog:
        errors = validate_catalog_file(Path(args.catalog))
        if errors:
            console.print("[red]Catalog errors:[/red]")
            for err in errors:
                console.print(f"- {err}")
            sys.exit(1)
        console.print("[green]Catalog is valid[/green]")
        return

    async def _run() -> list[str]:
        app = _build_app()
        await app.init_backend()
        return validate_app(app)

    issues = asyncio.run(_run())
    if issues:
        console.print("[red]Configuration errors found:[/red]")
        for issue in issues:
            console.print(f"- {issue}")
        sys.exit(1)
    console.print("[green]Store configuration is valid[/green]")
