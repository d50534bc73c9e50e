# Overview: Service-layer operations for reporting; read-only aggregates over the committed sale log.

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, time as dtime
from decimal import Decimal
from typing import Iterable

from ..errors import ValidationError
from ..models import Product, Sale
from ..time_utils import end_of_day, parse_iso_datetime
from .pricing_service import ZERO, quantize
from .storage import Collection

ALL = "All"
DEFAULT_CATEGORY = "General"
# Cost assumed for a sold item whose product has no cost price on file
FALLBACK_COST_RATIO = Decimal("0.7")


def _category_lookup(products: Iterable[Product]) -> dict[int, str]:
    return {p.id: p.category or DEFAULT_CATEGORY for p in products}


def _cost_lookup(products: Iterable[Product]) -> dict[int, Decimal]:
    return {p.id: Decimal(p.cost_price or 0) for p in products}


def _parse_bound(value, *, end: bool) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return end_of_day(value) if end else datetime.combine(value, dtime.min)

    text = str(value).strip()
    try:
        dt = parse_iso_datetime(text)
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")
    if end and "T" not in text and " " not in text:
        # A bare end date covers the whole day
        return end_of_day(dt)
    return dt


def filter_sales(
    sales: Iterable[Sale],
    products: Iterable[Product],
    *,
    start=None,
    end=None,
    cashier: str = ALL,
    category: str = ALL,
) -> list[Sale]:
    """
    Sales inside [start, end] (a bare end date is extended to the end of its
    day), rung up by cashier, with at least one item in category.
    """
    start_dt = _parse_bound(start, end=False)
    end_dt = _parse_bound(end, end=True)
    categories = _category_lookup(products)

    matched = []
    for sale in sales:
        if start_dt and sale.created_at < start_dt:
            continue
        if end_dt and sale.created_at > end_dt:
            continue
        if cashier and cashier != ALL and sale.cashier_name != cashier:
            continue
        if category and category != ALL:
            if not any(categories.get(item.product_id, DEFAULT_CATEGORY) == category for item in sale.items):
                continue
        matched.append(sale)
    return matched


def sales_summary(sales: list[Sale]) -> dict:
    revenue = sum((Decimal(s.total) for s in sales), ZERO)
    count = len(sales)
    avg_ticket = revenue / count if count else ZERO
    return {
        "revenue": quantize(revenue),
        "count": count,
        "avg_ticket": quantize(avg_ticket),
    }


def _unit_cost(item, costs: dict[int, Decimal]) -> Decimal:
    cost = costs.get(item.product_id, ZERO)
    if cost > ZERO:
        return cost
    return Decimal(item.price) * FALLBACK_COST_RATIO


def performance_metrics(
    sales: list[Sale],
    products: list[Product],
    *,
    category: str = ALL,
    expenses_total: Decimal | int = 0,
) -> dict:
    """
    Revenue, cost of goods, items and order count over matching items.

    Operating expenses only come off profit for the unfiltered ("All") view;
    a category view shows contribution margin.
    """
    categories = _category_lookup(products)
    costs = _cost_lookup(products)

    revenue = ZERO
    cost = ZERO
    items = 0
    orders = 0
    for sale in sales:
        has_match = False
        for item in sale.items:
            if category != ALL and categories.get(item.product_id, DEFAULT_CATEGORY) != category:
                continue
            has_match = True
            revenue += Decimal(item.total)
            items += item.quantity
            cost += _unit_cost(item, costs) * item.quantity
        if has_match:
            orders += 1

    expenses = Decimal(expenses_total) if category == ALL else ZERO
    profit = revenue - cost - expenses
    return {
        "revenue": quantize(revenue),
        "cost": quantize(cost),
        "expenses": quantize(expenses),
        "profit": quantize(profit),
        "items": items,
        "orders": orders,
        "margin_percent": quantize(profit / revenue * 100) if revenue else ZERO,
    }


def category_breakdown(sales: list[Sale], products: list[Product], *, category: str = ALL) -> list[dict]:
    categories = _category_lookup(products)
    costs = _cost_lookup(products)

    stats: "OrderedDict[str, dict]" = OrderedDict()
    for sale in sales:
        for item in sale.items:
            cat = categories.get(item.product_id, DEFAULT_CATEGORY)
            if category != ALL and cat != category:
                continue
            row = stats.setdefault(cat, {"revenue": ZERO, "count": 0, "cost": ZERO})
            row["revenue"] += Decimal(item.total)
            row["count"] += item.quantity
            row["cost"] += _unit_cost(item, costs) * item.quantity

    rows = []
    for name, row in stats.items():
        count = row["count"]
        rows.append({
            "category": name,
            "revenue": quantize(row["revenue"]),
            "items_sold": count,
            "total_cost": quantize(row["cost"]),
            "avg_price": quantize(row["revenue"] / count) if count else ZERO,
            "avg_cost": quantize(row["cost"] / count) if count else ZERO,
            "profit_per_item": quantize((row["revenue"] - row["cost"]) / count) if count else ZERO,
        })
    return sorted(rows, key=lambda r: r["revenue"], reverse=True)


def payment_method_split(sales: list[Sale], products: list[Product], *, category: str = ALL) -> dict[str, int]:
    categories = _category_lookup(products)
    split: dict[str, int] = {}
    for sale in sales:
        if category != ALL and not any(
            categories.get(item.product_id, DEFAULT_CATEGORY) == category for item in sale.items
        ):
            continue
        split[sale.payment_method] = split.get(sale.payment_method, 0) + 1
    return split


def cashier_list(sales: Iterable[Sale]) -> list[str]:
    return [ALL] + sorted({s.cashier_name for s in sales})


def category_list(products: Iterable[Product]) -> list[str]:
    return [ALL] + sorted({p.category or DEFAULT_CATEGORY for p in products})


def build_report(
    *,
    start=None,
    end=None,
    cashier: str = ALL,
    category: str = ALL,
    expenses_total: Decimal | int = 0,
) -> dict:
    """Load the sale log and catalog once and compute every report section."""
    all_sales = Collection(Sale).list()
    products = Collection(Product).list()
    sales = filter_sales(all_sales, products, start=start, end=end, cashier=cashier, category=category)
    return {
        "filters": {"start": start, "end": end, "cashier": cashier, "category": category},
        "summary": sales_summary(sales),
        "metrics": performance_metrics(sales, products, category=category, expenses_total=expenses_total),
        "categories": category_breakdown(sales, products, category=category),
        "payment_methods": payment_method_split(sales, products, category=category),
        "cashiers": cashier_list(all_sales),
        "category_choices": category_list(products),
    }
