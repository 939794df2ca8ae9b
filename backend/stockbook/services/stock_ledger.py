# Overview: Computes, checks and applies the stock effects of a transaction.

"""
Stock Ledger.

Line items are aggregated per product before any check: a sale listing the
same product twice (e.g. at two price tiers) is checked against the sum of
its quantities, never line by line against a stale figure.

Sales produce negative deltas and must fit in current stock; purchases
produce positive deltas and are never capacity checked.

The pre-commit feasibility check gives callers an early, side-effect free
answer. It is not what keeps stock non-negative under concurrency: the
deltas are applied with store.apply_stock_delta(), whose conditional UPDATE
re-checks the bound at write time inside the commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..errors import InsufficientStock
from ..models import Product
from ..validation import LineItem
from . import store


@dataclass(frozen=True)
class StockDelta:
    product_id: int
    delta: int
    product_name: str | None = None


def aggregate_quantities(line_items: Iterable[LineItem]) -> dict[int, int]:
    """Total requested quantity per product, in first-seen order."""
    totals: dict[int, int] = {}
    for item in line_items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def check_feasibility(products: dict[int, Product], totals: dict[int, int]) -> None:
    """Raise InsufficientStock for the first product whose stock can't cover its total."""
    for product_id, required in totals.items():
        product = products[product_id]
        if product.stock < required:
            raise InsufficientStock(product_id, product.name, product.stock, required)


def plan_stock_deltas(kind: str, products: dict[int, Product], line_items: Iterable[LineItem]) -> list[StockDelta]:
    """
    Deltas to apply for a transaction of `kind` over resolved `products`.

    Sales are feasibility-checked against the aggregated quantities.
    """
    totals = aggregate_quantities(line_items)

    if kind == "sale":
        check_feasibility(products, totals)
        sign = -1
    else:
        sign = 1

    return [
        StockDelta(product_id=product_id, delta=sign * quantity, product_name=products[product_id].name)
        for product_id, quantity in totals.items()
    ]


def apply_stock_deltas(business_id: int, deltas: Iterable[StockDelta]) -> dict[int, int]:
    """
    Apply deltas through the conditional update; returns new stock per product.

    Must run inside store/concurrency run_atomic(): a failure on any product
    leaves the earlier updates to be rolled back with the rest of the unit.
    """
    # Fixed order keeps lock acquisition consistent across concurrent commits
    new_levels: dict[int, int] = {}
    for d in sorted(deltas, key=lambda d: d.product_id):
        new_levels[d.product_id] = store.apply_stock_delta(
            d.product_id, d.delta, business_id, product_name=d.product_name
        )
    return new_levels
