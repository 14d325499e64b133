#!/usr/bin/env python3
"""Source Planning Script.

Plans which holdings to spend to raise a settlement-currency amount, and
optionally sizes the swap into a destination asset.

Usage:
    python scripts/plan_sources.py holdings.json --target 250 --user 0xabc...

holdings.json is a list of objects, highest priority first:
    [{"universe": "ETHEREUM", "chain_id": 42161,
      "token": "0xaf88d065e77c8cc2239327c5edb3a432268e5831",
      "amount": "125000000", "value": "125"}]

Options:
    --target       Settlement amount to raise (whole units)
    --user         Address of the holder
    --fees         JSON file of collection fees: [{"universe", "chain_id", "token", "fee"}]
    --destination  UNIVERSE:CHAIN_ID:TOKEN:AMOUNT to size a destination swap for
    --value-only   Only value the holdings, do not plan
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from omniroute.config import get_settings
from omniroute.data import ChainID, FeeTable, Universe
from omniroute.errors import OmnirouteError
from omniroute.planner import (
    ConvertedConsumption,
    DestinationResolver,
    Holding,
    SourceSelector,
    plan_total,
)
from omniroute.routing import create_providers

load_dotenv()

logger = logging.getLogger(__name__)


def load_holdings(path: str) -> list[Holding]:
    """Read holdings from a JSON file."""
    with open(path) as f:
        raw = json.load(f)
    return [
        Holding(
            chain_id=ChainID(Universe[item["universe"].upper()], int(item["chain_id"])),
            token_address=item["token"],
            amount=int(item["amount"]),
            value=Decimal(item["value"]) if item.get("value") is not None else None,
        )
        for item in raw
    ]


def load_fees(path: str) -> FeeTable:
    """Read collection fees from a JSON file."""
    table = FeeTable()
    with open(path) as f:
        for item in json.load(f):
            table.set(Universe[item["universe"].upper()], int(item["chain_id"]), item["token"], Decimal(item["fee"]))
    return table


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    providers = create_providers(settings)
    holdings = load_holdings(args.holdings)

    if args.value_only:
        resolver = DestinationResolver(providers, settings=settings)
        summary = await resolver.liquidate_input_holdings(holdings, args.user)
        for index, valuation in enumerate(summary.valuations):
            value = valuation.value if valuation.value is not None else "(no quote)"
            print(f"  #{index} {valuation.holding.chain_id}: {value}")
        print(f"Total: {summary.total} {settings.canonical_currency}")
        return 0

    fee_table = load_fees(args.fees) if args.fees else FeeTable()
    selector = SourceSelector(providers, fee_table=fee_table, settings=settings)
    records = await selector.select(holdings, Decimal(args.target), args.user)

    print(f"Plan for {args.target} {settings.canonical_currency}:")
    for record in records:
        if isinstance(record, ConvertedConsumption):
            print(
                f"  #{record.priority} {record.currency.symbol}@{record.holding.chain_id}: "
                f"swap {record.input_amount} -> {record.output_amount} via {record.provider.name}"
            )
        else:
            print(f"  #{record.priority} {record.currency.symbol}@{record.holding.chain_id}: use {record.amount}")
    print(f"Total: {plan_total(records)}")

    if args.destination:
        universe, chain_id, token, amount = args.destination.split(":")
        resolver = DestinationResolver(providers, settings=settings)
        swap = await resolver.determine_destination_swap(
            ChainID(Universe[universe.upper()], int(chain_id)), token, Decimal(amount), args.user
        )
        if swap is None:
            print("Destination is the settlement currency, no swap needed")
        else:
            print(f"Destination: spend {swap.normalized_input} for {swap.output_amount} via {swap.provider.name}")

    return 0


def main():
    parser = argparse.ArgumentParser(description="Cross-chain source planner")
    parser.add_argument("holdings", help="JSON file with holdings in priority order")
    parser.add_argument("--target", type=str, default="0", help="Settlement amount to raise")
    parser.add_argument("--user", type=str, required=True, help="Holder address")
    parser.add_argument("--fees", type=str, help="JSON file with collection fees")
    parser.add_argument("--destination", type=str, help="UNIVERSE:CHAIN_ID:TOKEN:AMOUNT")
    parser.add_argument("--value-only", action="store_true", help="Only value the holdings")

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except OmnirouteError as e:
        logger.error(f"Planning failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
