"""CLI commands for Betline administration."""

from __future__ import annotations

import argparse
import asyncio
import sys

from betline.accounts.admin import USER_STATUSES, AdminService
from betline.config import Settings
from betline.db.migrations import init_db
from betline.db.repository import BetRepository, ExpressGroupRepository
from betline.main import configure_logging
from betline.odds.refresher import refresh_once
from betline.wagers.history import user_history


async def run_refresh() -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    result = await refresh_once(settings)
    print(result.message)
    for sport, fetch in sorted(result.sport_stats.items()):
        if fetch.error:
            print(f"  {sport}: ERROR - {fetch.error}")
        else:
            print(f"  {sport}: {fetch.count} events")
    return 0 if result.ok else 1


async def run_promo_create(
    code: str, role: str, bonus: float, max_uses: int | None, expires_at: str | None
) -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    result = await AdminService(db).create_promo_code(
        code, user_role=role, bonus_balance=bonus, max_uses=max_uses, expires_at=expires_at
    )
    print(result.message)
    await db.close()
    return 0 if result.ok else 1


async def run_promo_list() -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    promos = await AdminService(db).list_promo_codes()
    if not promos:
        print("No promo codes.")
    for p in promos:
        uses = f"{p['used_count']}/{p['max_uses'] or '∞'}"
        state = "active" if p["is_active"] else "inactive"
        print(
            f"  {p['code']}: role={p['user_role']} bonus={p['bonus_balance']:.2f} "
            f"uses={uses} expires={p['expires_at'] or '-'} ({state})"
        )
    await db.close()
    return 0


async def run_adjust_balance(user_id: int, amount: str, reason: str) -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    result = await AdminService(db).adjust_balance(user_id, amount, reason)
    if result.ok:
        print(f"{result.message} New balance: {result.data['new_balance']:.2f}")
    else:
        print(result.message)
    await db.close()
    return 0 if result.ok else 1


async def run_set_status(user_id: int, status: str) -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    result = await AdminService(db).set_user_status(user_id, status)
    print(result.message)
    await db.close()
    return 0 if result.ok else 1


async def run_history(user_id: int) -> int:
    settings = Settings()
    configure_logging(settings.log_level)

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    summary = await user_history(BetRepository(db), ExpressGroupRepository(db), user_id)
    if summary.total == 0:
        print("No settled bets yet.")
    else:
        print(f"Settled: {summary.total} ({summary.won}W / {summary.lost}L / {summary.void}V)")
        print(f"Win rate: {summary.win_rate}%")
        print(f"Won: {summary.total_won:.2f}  Lost: {summary.total_lost:.2f}  Profit: {summary.profit:.2f}")
    await db.close()
    return 0


def cli() -> None:
    parser = argparse.ArgumentParser(prog="betline-tools", description="Betline admin tools")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("refresh", help="Fetch odds once and upsert events")

    pc = sub.add_parser("promo-create", help="Create a registration promo code")
    pc.add_argument("code")
    pc.add_argument("--role", default="user", help="Role granted to new users")
    pc.add_argument("--bonus", type=float, default=0.0, help="Starting balance")
    pc.add_argument("--max-uses", type=int, default=None)
    pc.add_argument("--expires-at", default=None, help="ISO timestamp, e.g. 2025-12-31T23:59:00Z")

    sub.add_parser("promo-list", help="List promo codes")

    ab = sub.add_parser("adjust-balance", help="Credit or debit a user's balance")
    ab.add_argument("user_id", type=int)
    ab.add_argument("amount", help="Positive to credit, negative to debit")
    ab.add_argument("reason")

    ss = sub.add_parser("set-status", help="Approve or block a user")
    ss.add_argument("user_id", type=int)
    ss.add_argument("status", choices=USER_STATUSES)

    hi = sub.add_parser("history", help="Show a user's settled bet summary")
    hi.add_argument("user_id", type=int)

    args = parser.parse_args()

    if args.command == "refresh":
        code = asyncio.run(run_refresh())
    elif args.command == "promo-create":
        code = asyncio.run(
            run_promo_create(args.code, args.role, args.bonus, args.max_uses, args.expires_at)
        )
    elif args.command == "promo-list":
        code = asyncio.run(run_promo_list())
    elif args.command == "adjust-balance":
        code = asyncio.run(run_adjust_balance(args.user_id, args.amount, args.reason))
    elif args.command == "set-status":
        code = asyncio.run(run_set_status(args.user_id, args.status))
    elif args.command == "history":
        code = asyncio.run(run_history(args.user_id))
    else:
        parser.print_help()
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    cli()
