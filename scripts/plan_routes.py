#!/usr/bin/env python3
"""Plan bridge routes from the command line.

Runs the allocation engine against fixed balances, without the HTTP layer
or any balance RPC calls.

Usage:
    python scripts/plan_routes.py --target polygon --amount 100 \
        --balance arbitrum=80 --balance base=30 [--strategy greedy_by_fee] [--offline]

Options:
    --target    Chain to fund
    --amount    Amount required on the target chain
    --balance   CHAIN=AMOUNT, repeatable (unlisted chains hold zero)
    --strategy  Allocation strategy (default: from settings)
    --offline   Price with the local fallback formula only
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bridgeroute.allocation import RouteAllocationEngine
from bridgeroute.balances import StaticBalanceSource, fetch_all_balances
from bridgeroute.chains import CHAINS
from bridgeroute.config import AllocationStrategy, get_settings
from bridgeroute.fees import create_fallback_model, create_fee_quoter

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# Placeholder owner/token used for quoting only
DEFAULT_OWNER = "0x0000000000000000000000000000000000000001"


def parse_balance(value: str) -> tuple[str, Decimal]:
    """Parse a CHAIN=AMOUNT argument."""
    chain, sep, amount = value.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected CHAIN=AMOUNT, got '{value}'")
    chain = chain.strip().lower()
    if chain not in CHAINS:
        raise argparse.ArgumentTypeError(f"unknown chain '{chain}'")
    try:
        return chain, Decimal(amount)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid amount '{amount}'") from None


async def plan(args: argparse.Namespace) -> dict:
    settings = get_settings()
    quoter = create_fallback_model(settings) if args.offline else create_fee_quoter(settings)
    engine = RouteAllocationEngine(
        fee_quoter=quoter,
        strategy=AllocationStrategy(args.strategy) if args.strategy else settings.allocation_strategy,
        dust_threshold=settings.dust_threshold,
        max_exhaustive_candidates=settings.exhaustive_max_candidates,
    )

    source = StaticBalanceSource(dict(args.balance or []))
    balances = await fetch_all_balances(source, args.owner)
    target = CHAINS[args.target]

    response = await engine.find_optimal_routes(
        balances,
        args.target,
        args.amount,
        target.token_address,
        args.owner,
    )
    return response.to_dict()


def main():
    parser = argparse.ArgumentParser(description="Plan cross-chain bridge routes")
    parser.add_argument("--target", required=True, choices=sorted(CHAINS.keys()), help="Chain to fund")
    parser.add_argument("--amount", required=True, type=Decimal, help="Required amount")
    parser.add_argument(
        "--balance", action="append", type=parse_balance, metavar="CHAIN=AMOUNT",
        help="Balance on a chain (repeatable)",
    )
    parser.add_argument(
        "--strategy", choices=[s.value for s in AllocationStrategy], help="Allocation strategy"
    )
    parser.add_argument("--owner", default=DEFAULT_OWNER, help="Owner address used for quotes")
    parser.add_argument("--offline", action="store_true", help="Use fallback fees only")
    args = parser.parse_args()

    if args.amount <= 0:
        parser.error("--amount must be positive")

    result = asyncio.run(plan(args))
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
