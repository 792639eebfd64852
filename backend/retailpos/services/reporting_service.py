# Overview: Service-layer operations for reporting; sales, customer and stock aggregates.

"""
Every sales report loads the completed sales of its window and reduces them
in memory. Windows are UTC calendar days; an end date covers its whole day.
Stock reports read the current catalog.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Iterable

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..money import ZERO, money_json, to_money
from ..time_utils import day_bounds, parse_iso_date, to_utc_z, utcnow
from ..validation import ValidationError


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


def _parse_day(value: str | None, label: str):
    if value is None or not str(value).strip():
        raise ReportError(f"{label} is required")
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ReportError(f"Invalid {label}; expected YYYY-MM-DD")


def _completed_sales(start, end) -> list[Sale]:
    return (
        db.session.query(Sale)
        .options(selectinload(Sale.lines).selectinload(SaleLine.product))
        .filter(
            Sale.status == "completed",
            Sale.created_at >= start,
            Sale.created_at < end,
        )
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )


def _total(sales: Iterable[Sale]) -> Decimal:
    return sum((Decimal(s.total) for s in sales), ZERO)


def top_products(sales: Iterable[Sale], limit: int | None = None) -> list[dict]:
    """
    Rank products by revenue contributed (line totals) across `sales`.

    Ties on revenue are ordered by product id ascending.
    """
    if limit is None:
        limit = int(current_app.config.get("TOP_PRODUCTS_LIMIT", 10))

    stats: dict[int, dict] = {}
    for sale in sales:
        for line in sale.lines:
            entry = stats.get(line.product_id)
            if entry is None:
                product = line.product
                entry = stats[line.product_id] = {
                    "product_id": line.product_id,
                    "sku": product.sku if product else None,
                    "name": product.name if product else None,
                    "total_quantity": 0,
                    "total_revenue": ZERO,
                }
            entry["total_quantity"] += line.quantity
            entry["total_revenue"] += Decimal(line.line_total)

    ranked = sorted(stats.values(), key=lambda e: (-e["total_revenue"], e["product_id"]))
    return [
        {**entry, "total_revenue": money_json(entry["total_revenue"])}
        for entry in ranked[:limit]
    ]


def daily_sales(date_str: str) -> dict:
    day = _parse_day(date_str, "date")
    start, end = day_bounds(day)
    sales = _completed_sales(start, end)

    return {
        "date": day.isoformat(),
        "total_sales": money_json(_total(sales)),
        "total_transactions": len(sales),
        "top_products": top_products(sales),
        "sales": [s.to_dict() for s in sales],
    }


def sales_summary(start_date: str | None, end_date: str | None) -> dict:
    start_day = _parse_day(start_date, "start_date")
    end_day = _parse_day(end_date, "end_date")
    if start_day > end_day:
        raise ReportError("start_date must be on or before end_date")

    sales = _completed_sales(day_bounds(start_day)[0], day_bounds(end_day)[1])
    total = _total(sales)
    count = len(sales)

    payment_methods: dict[str, Decimal] = {}
    for sale in sales:
        payment_methods[sale.payment_method] = payment_methods.get(sale.payment_method, ZERO) + Decimal(sale.total)

    return {
        "start_date": start_day.isoformat(),
        "end_date": end_day.isoformat(),
        "total_sales": money_json(total),
        "total_transactions": count,
        "average_transaction_value": money_json(to_money(total / count)) if count else 0.0,
        "payment_methods": {method: money_json(amount) for method, amount in sorted(payment_methods.items())},
        "top_products": top_products(sales),
    }


def customer_sales_report(
    start_date: str | None = None,
    end_date: str | None = None,
    limit: int | None = None,
) -> dict:
    """
    Completed sales with a customer attached, grouped per customer and ranked
    by spend (ties by customer id). Defaults to the 30 days ending today.
    Totals cover every customer in the window, not only the listed ones.
    """
    if limit is None:
        limit = int(current_app.config.get("CUSTOMER_REPORT_LIMIT", 20))
    end_day = _parse_day(end_date, "end_date") if end_date else utcnow().date()
    start_day = _parse_day(start_date, "start_date") if start_date else end_day - timedelta(days=30)
    if start_day > end_day:
        raise ReportError("start_date must be on or before end_date")

    sales = _completed_sales(day_bounds(start_day)[0], day_bounds(end_day)[1])

    stats: dict[int, dict] = {}
    for sale in sales:
        if sale.customer_id is None:
            continue
        entry = stats.get(sale.customer_id)
        if entry is None:
            customer = sale.customer
            entry = stats[sale.customer_id] = {
                "customer_id": sale.customer_id,
                "name": customer.full_name,
                "email": customer.email,
                "total_orders": 0,
                "total_spent": ZERO,
                "total_items": 0,
                "first_order": sale.created_at,
                "last_order": sale.created_at,
            }
        entry["total_orders"] += 1
        entry["total_spent"] += Decimal(sale.total)
        entry["total_items"] += sum(line.quantity for line in sale.lines)
        entry["last_order"] = sale.created_at

    ranked = sorted(stats.values(), key=lambda e: (-e["total_spent"], e["customer_id"]))
    revenue = sum((e["total_spent"] for e in ranked), ZERO)

    rows = []
    for entry in ranked[:limit]:
        rows.append({
            **entry,
            "total_spent": money_json(entry["total_spent"]),
            "average_order_value": money_json(to_money(entry["total_spent"] / entry["total_orders"])),
            "first_order": to_utc_z(entry["first_order"]),
            "last_order": to_utc_z(entry["last_order"]),
        })

    return {
        "start_date": start_day.isoformat(),
        "end_date": end_day.isoformat(),
        "total_customers": len(ranked),
        "total_revenue": money_json(revenue),
        "average_customer_value": money_json(to_money(revenue / len(ranked))) if ranked else 0.0,
        "customers": rows,
    }


def _stock_status(product: Product) -> str:
    if product.quantity <= product.min_stock:
        return "low_stock"
    if product.max_stock is not None and product.quantity >= product.max_stock:
        return "overstocked"
    return "normal"


def stock_level_report() -> dict:
    """
    Every product with its stock status and value at cost.

    Utilization is quantity as a percentage of max_stock and is null for
    products without one. Rows are ordered by utilization, highest first,
    then by name.
    """
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()

    rows = []
    for p in products:
        utilization = None
        if p.max_stock:
            utilization = round(p.quantity * 100 / p.max_stock, 2)
        rows.append({
            "product_id": p.id,
            "sku": p.sku,
            "name": p.name,
            "category": p.category,
            "quantity": p.quantity,
            "min_stock": p.min_stock,
            "max_stock": p.max_stock,
            "utilization": utilization,
            "stock_value": to_money(Decimal(p.cost_price) * p.quantity),
            "status": _stock_status(p),
        })
    rows.sort(key=lambda r: (r["utilization"] is None, -(r["utilization"] or 0)))

    measured = [r["utilization"] for r in rows if r["utilization"] is not None]
    total_value = sum((r["stock_value"] for r in rows), ZERO)
    return {
        "summary": {
            "total_products": len(rows),
            "low_stock_count": sum(1 for r in rows if r["status"] == "low_stock"),
            "overstocked_count": sum(1 for r in rows if r["status"] == "overstocked"),
            "normal_count": sum(1 for r in rows if r["status"] == "normal"),
            "total_value": money_json(total_value),
            "average_utilization": round(sum(measured) / len(measured), 2) if measured else None,
        },
        "items": [{**r, "stock_value": money_json(r["stock_value"])} for r in rows],
    }


def _percent(part: Decimal, whole: Decimal) -> Decimal | None:
    if whole <= 0:
        return None
    return (part * 100 / whole).quantize(Decimal("0.01"))


def _float_or_none(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def inventory_valuation_report() -> dict:
    """On-hand stock at cost and at retail, grouped by category (highest cost first)."""
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()

    groups: dict[str, dict] = {}
    for p in products:
        category = p.category or "Uncategorized"
        group = groups.get(category)
        if group is None:
            group = groups[category] = {
                "category": category,
                "product_count": 0,
                "total_cost": ZERO,
                "total_retail": ZERO,
                "margins": [],
                "items": [],
            }
        cost, price = Decimal(p.cost_price), Decimal(p.selling_price)
        stock_value = to_money(cost * p.quantity)
        retail_value = to_money(price * p.quantity)
        margin = _percent(price - cost, price)

        group["product_count"] += 1
        group["total_cost"] += stock_value
        group["total_retail"] += retail_value
        if margin is not None:
            group["margins"].append(margin)
        group["items"].append({
            "product_id": p.id,
            "sku": p.sku,
            "name": p.name,
            "quantity": p.quantity,
            "cost_price": money_json(cost),
            "selling_price": money_json(price),
            "stock_value": money_json(stock_value),
            "retail_value": money_json(retail_value),
            "profit_margin": _float_or_none(margin),
        })

    categories = []
    for group in sorted(groups.values(), key=lambda g: (-g["total_cost"], g["category"])):
        margins = group.pop("margins")
        profit = group["total_retail"] - group["total_cost"]
        categories.append({
            **group,
            "total_cost": money_json(group["total_cost"]),
            "total_retail": money_json(group["total_retail"]),
            "total_profit": money_json(profit),
            "average_margin": float(to_money(sum(margins) / len(margins))) if margins else None,
            "profit_percentage": _float_or_none(_percent(profit, group["total_retail"])),
        })

    total_cost = sum((g["total_cost"] for g in groups.values()), ZERO)
    total_retail = sum((g["total_retail"] for g in groups.values()), ZERO)
    return {
        "summary": {
            "total_products": len(products),
            "total_cost": money_json(total_cost),
            "total_retail": money_json(total_retail),
            "total_profit": money_json(total_retail - total_cost),
        },
        "categories": categories,
    }
