"""
Project: Food Truck Kiosk

Description:
Revenue accounting over serialized orders (Order.to_dict()). Cash orders only
carry a subtotal and a tip; online orders also carry tax, processing fee and
the captured stripeTotal. collected_amount() is the one definition of "money
received" and every aggregate below goes through it.
The prep board counts (units still to hand over) read the same dicts.

Amounts are summed unrounded; callers round with money() when presenting.
"""

import calendar
import csv
import io
from collections import OrderedDict
from datetime import date, datetime, timedelta

from items import group_items, parse_item, strip_price_suffix
from models import STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED

WINDOWS = ("today", "week", "month", "all", "custom")


def money(value):
    return round(float(value or 0.0), 2)


def _when(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def paid_online(order):
    return bool(order.get("paid") and order.get("paymentId"))


def collected_amount(order):
    """Money actually received for one order.

    Online: the captured stripeTotal (subtotal + tax + fee + tip).
    Counter/cash: subtotal + tip.
    """
    if paid_online(order) and order.get("stripeTotal") is not None:
        return float(order["stripeTotal"])
    return float(order.get("total") or 0.0) + float(order.get("tip") or 0.0)


def _active(orders):
    return [o for o in orders if o.get("status") != STATUS_CANCELLED]


def _with_status(orders, status):
    return [o for o in orders if o.get("status") == status]


def summarize(orders):
    active = _active(orders)
    total_orders = len(orders)
    completed = len(_with_status(orders, STATUS_COMPLETED))
    revenue = sum(collected_amount(o) for o in active)
    paid = sum(1 for o in orders if o.get("paid"))
    return {
        "totalRevenue": revenue,
        "totalTips": sum(float(o.get("tip") or 0.0) for o in active),
        "totalOrders": total_orders,
        "avgOrderValue": revenue / len(active) if active else 0.0,
        # cancelled orders stay in the denominator: this is fulfilment, not money
        "completionRate": completed / total_orders * 100 if total_orders else 0.0,
        "paymentRate": paid / total_orders * 100 if total_orders else 0.0,
        "completedOrders": completed,
        "pendingOrders": len(_with_status(orders, STATUS_PENDING)),
        "cancelledOrders": len(_with_status(orders, STATUS_CANCELLED)),
    }


# --------- item pricing ---------
def menu_index(menu):
    return {m["name"]: m for m in menu}


def unit_price(item, index):
    """Price actually charged for one unit: base price plus premium extras."""
    name, options = parse_item(item)
    menu_item = index.get(name)
    if menu_item is None:
        return 0.0
    price = float(menu_item.get("price") or 0.0)
    extras = menu_item.get("extraOptions") or {}
    for option in options:
        if option in extras:
            price += float(extras[option])
        else:
            base = strip_price_suffix(option)
            if base in extras:
                price += float(extras[base])
    return price


def top_selling_items(orders, menu, limit=10):
    index = menu_index(menu)
    counts = {}
    revenue = {}
    for order in _active(orders):
        for item in order.get("items") or []:
            name, _ = parse_item(item)
            counts[name] = counts.get(name, 0) + 1
            revenue[name] = revenue.get(name, 0.0) + unit_price(item, index)
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [{"name": n, "count": c, "revenue": revenue[n]} for n, c in ranked[:limit]]


def sales_by_category(orders, menu):
    index = menu_index(menu)
    sales = {}
    counts = {}
    for order in _active(orders):
        for item in order.get("items") or []:
            name, _ = parse_item(item)
            menu_item = index.get(name)
            if not menu_item or not menu_item.get("category"):
                continue
            category = menu_item["category"]
            sales[category] = sales.get(category, 0.0) + unit_price(item, index)
            counts[category] = counts.get(category, 0) + 1
    best = max(list(sales.values()) + [1.0])
    rows = [
        {"category": c, "revenue": r, "count": counts[c], "percentage": r / best * 100}
        for c, r in sales.items()
    ]
    return sorted(rows, key=lambda row: row["revenue"], reverse=True)


# --------- time series ---------
def orders_by_hour(orders):
    hours = [0] * 24
    for order in _active(orders):
        hours[_when(order["createdAt"]).hour] += 1
    peak = max(hours + [1])
    return [
        {"hour": h, "count": c, "percentage": c / peak * 100}
        for h, c in enumerate(hours)
        if c
    ]


def revenue_trend(orders):
    daily = {}
    for order in _active(orders):
        key = _when(order["createdAt"]).date().isoformat()
        daily[key] = daily.get(key, 0.0) + collected_amount(order)
    points = []
    for key in sorted(daily):
        day = date.fromisoformat(key)
        points.append({"date": key, "label": f"{day:%b} {day.day}", "revenue": daily[key]})
    return points


def payment_breakdown(orders):
    completed = _with_status(orders, STATUS_COMPLETED)
    online = [o for o in completed if paid_online(o)]
    counter = [o for o in completed if o.get("paid") and not o.get("paymentId")]
    paid_total = len(online) + len(counter) or 1
    unpaid = [o for o in _with_status(orders, STATUS_PENDING) if not o.get("paid")]
    return {
        "online": {
            "count": len(online),
            "percentage": len(online) / paid_total * 100,
            "revenue": sum(collected_amount(o) for o in online),
        },
        "counter": {
            "count": len(counter),
            "percentage": len(counter) / paid_total * 100,
            "revenue": sum(collected_amount(o) for o in counter),
        },
        "unpaid": {"count": len(unpaid), "percentage": 0.0, "revenue": 0.0},
    }


def average_wait_time(orders):
    waits = []
    for order in _with_status(orders, STATUS_COMPLETED):
        created, updated = _when(order.get("createdAt")), _when(order.get("updatedAt"))
        if created is None or updated is None:
            continue
        waits.append((updated - created).total_seconds() / 60)
    return {"minutes": sum(waits) / len(waits) if waits else 0.0, "orders": len(waits)}


# --------- prep board ---------
NO_OPTIONS = "Standard"


def pending_item_summary(orders):
    """Units still to prepare across Pending orders, by name then option variant.

    Units whose item string is marked given on their order are skipped.
    """
    names = OrderedDict()
    for order in _with_status(orders, STATUS_PENDING):
        given = order.get("givenItems") or {}
        for item in order.get("items") or []:
            if given.get(item):
                continue
            name, options = parse_item(item)
            entry = names.setdefault(name, {"pending": 0, "variants": OrderedDict()})
            variant = ", ".join(options) or NO_OPTIONS
            entry["pending"] += 1
            entry["variants"][variant] = entry["variants"].get(variant, 0) + 1
    rows = [
        {
            "name": name,
            "pending": entry["pending"],
            "variants": [{"options": v, "pending": n} for v, n in entry["variants"].items()],
        }
        for name, entry in names.items()
    ]
    return sorted(rows, key=lambda row: row["pending"], reverse=True)


def given_progress(order):
    """Share of an order's distinct item strings already handed over."""
    keys = list(group_items(order.get("items") or []))
    given = order.get("givenItems") or {}
    done = sum(1 for key in keys if given.get(key))
    return {
        "given": done,
        "distinct": len(keys),
        # half-up, as shown on the board
        "percent": int(done * 100 / len(keys) + 0.5) if keys else 0,
        "allGiven": bool(keys) and done == len(keys),
    }


# --------- windows ---------
def _midnight(day):
    return datetime(day.year, day.month, day.day)


def _month_start(year, month):
    return datetime(year, month, 1)


def _next_month_start(year, month):
    return datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)


def window_bounds(window, start=None, end=None, now=None):
    """Return (lower, upper) datetimes for a window; either may be None."""
    if window not in WINDOWS:
        raise ValueError(f"Unknown period {window!r}")
    now = now or datetime.now()
    if window == "today":
        return _midnight(now), None
    if window == "week":
        return now - timedelta(days=7), None
    if window == "month":
        return _month_start(now.year, now.month), None
    if window == "custom":
        if start is None or end is None:
            raise ValueError("custom period needs start and end dates")
        if end < start:
            raise ValueError("end date is before start date")
        # end date is inclusive
        return _midnight(start), _midnight(end) + timedelta(days=1)
    return None, None


def _between(orders, lower, upper):
    out = []
    for order in orders:
        created = _when(order["createdAt"])
        if lower is not None and created < lower:
            continue
        if upper is not None and created >= upper:
            continue
        out.append(order)
    return out


def filter_by_window(orders, window, start=None, end=None, now=None):
    lower, upper = window_bounds(window, start, end, now)
    return _between(orders, lower, upper)


def previous_period(orders, window, start=None, end=None, now=None):
    """Orders from the period of the same length right before the window."""
    now = now or datetime.now()
    if window == "today":
        today = _midnight(now)
        return _between(orders, today - timedelta(days=1), today)
    if window == "week":
        return _between(orders, now - timedelta(days=14), now - timedelta(days=7))
    if window == "month":
        this_month = _month_start(now.year, now.month)
        last = this_month - timedelta(days=1)
        return _between(orders, _month_start(last.year, last.month), this_month)
    if window == "custom":
        lower, upper = window_bounds(window, start, end, now)
        return _between(orders, lower - (upper - lower), lower)
    return []


def _change(current, previous):
    return (current - previous) / previous * 100 if previous else 0.0


def compare_periods(current, previous):
    current_revenue = sum(collected_amount(o) for o in _active(current))
    previous_revenue = sum(collected_amount(o) for o in _active(previous))
    return {
        "currentRevenue": current_revenue,
        "previousRevenue": previous_revenue,
        "revenueChange": _change(current_revenue, previous_revenue),
        "currentCount": len(current),
        "previousCount": len(previous),
        "orderChange": _change(len(current), len(previous)),
    }


def monthly_heatmap(orders, year, month):
    days_in_month = calendar.monthrange(year, month)[1]
    month_orders = _active(
        _between(orders, _month_start(year, month), _next_month_start(year, month))
    )
    days = [
        {"day": d, "weekday": calendar.day_name[date(year, month, d).weekday()], "count": 0, "revenue": 0.0}
        for d in range(1, days_in_month + 1)
    ]
    for order in month_orders:
        cell = days[_when(order["createdAt"]).day - 1]
        cell["count"] += 1
        cell["revenue"] += collected_amount(order)
    peak = max([d["count"] for d in days] + [1])
    for cell in days:
        cell["intensity"] = cell["count"] / peak * 100

    revenue = sum(collected_amount(o) for o in month_orders)
    return {
        "year": year,
        "month": month,
        "days": days,
        "maxOrders": peak,
        "totalOrders": len(month_orders),
        "totalRevenue": revenue,
        "avgOrderValue": revenue / len(month_orders) if month_orders else 0.0,
        "totalTips": sum(float(o.get("tip") or 0.0) for o in month_orders),
        "avgWaitTime": average_wait_time(month_orders)["minutes"],
    }


# --------- tax report ---------
def monthly_tax_report(orders, year, month, tax_rate=0.0825):
    """Sales summary for Completed orders created in the given month.

    Tax is only what was captured at checkout (taxAmount); it is never
    recomputed for cash orders.
    """
    completed = _with_status(
        _between(orders, _month_start(year, month), _next_month_start(year, month)),
        STATUS_COMPLETED,
    )
    online = [o for o in completed if paid_online(o)]
    collected = sum(collected_amount(o) for o in completed)
    fees = sum(float(o.get("convenienceFee") or 0.0) for o in completed)
    card_revenue = sum(collected_amount(o) for o in online)
    return {
        "year": year,
        "month": month,
        "label": f"{calendar.month_name[month]} 1-{calendar.monthrange(year, month)[1]}, {year}",
        "transactions": len(completed),
        "grossSales": sum(float(o.get("total") or 0.0) for o in completed),
        "totalTax": sum(float(o.get("taxAmount") or 0.0) for o in completed),
        "taxTransactions": len(online),
        "totalTips": sum(float(o.get("tip") or 0.0) for o in completed),
        "tipTransactions": sum(1 for o in completed if (o.get("tip") or 0) > 0),
        "totalCollected": collected,
        "totalFees": fees,
        "netTotal": collected - fees,
        "taxableSales": sum(float(o.get("total") or 0.0) for o in online),
        "cardRevenue": card_revenue,
        "counterRevenue": collected - card_revenue,
        "onlineOrders": len(online),
        "counterOrders": len(completed) - len(online),
        "taxRatePercent": tax_rate * 100,
    }


def _usd(value):
    return f"${money(value):.2f}"


def tax_report_csv(report, generated_at=None):
    generated_at = generated_at or datetime.now()
    n = report["transactions"]
    rows = [
        ["Monthly Sales Summary - Tax Report"],
        [report["label"]],
        ["Generated", generated_at.strftime("%Y-%m-%d %H:%M")],
        [],
        ["SALES SUMMARY"],
        ["Total Sales", "", _usd(report["grossSales"])],
        [],
        ["DETAILED BREAKDOWN"],
        ["Gross sales", f"{n} transactions", _usd(report["grossSales"])],
        ["  Items", f"{n} transactions", _usd(report["grossSales"])],
        ["  Service charges", "", _usd(0)],
        ["Discounts & comps", "", _usd(0)],
        ["Taxes", f"{report['taxTransactions']} transactions", _usd(report["totalTax"])],
        ["Tips", f"{report['tipTransactions']} transactions", _usd(report["totalTips"])],
        ["Total sales", f"{n} transactions", _usd(report["totalCollected"])],
        ["Total payments collected", f"{n} transactions", _usd(report["totalCollected"])],
        ["  Card", "", _usd(report["cardRevenue"])],
        ["  Cash/Counter", "", _usd(report["counterRevenue"])],
        [],
        ["FEES"],
        ["Total fees", "", f"({_usd(report['totalFees'])})"],
        ["NET TOTAL", "", _usd(report["netTotal"])],
        [],
        ["TAX INFORMATION"],
        ["Tax Rate", "", f"{report['taxRatePercent']:.2f}%"],
        ["Taxable Sales", "", _usd(report["taxableSales"])],
        ["Tax Collected", "", _usd(report["totalTax"])],
        [],
        ["PAYMENT METHODS"],
        ["Online Payments", f"{report['onlineOrders']} orders"],
        ["Counter Payments", f"{report['counterOrders']} orders"],
        ["Completed Orders", str(n)],
    ]
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerows(rows)
    return buf.getvalue()


def orders_csv(orders):
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Order Number", "Customer", "Date", "Items", "Collected", "Status", "Paid"])
    for order in orders:
        writer.writerow([
            order["orderNumber"],
            order["customerName"],
            _when(order["createdAt"]).strftime("%Y-%m-%d %H:%M"),
            "; ".join(order.get("items") or []),
            _usd(collected_amount(order)),
            order["status"],
            "Yes" if order.get("paid") else "No",
        ])
    return buf.getvalue()


# --------- checkout pricing ---------
def quote_online_checkout(subtotal, tip=0.0, tax_rate=0.0825, fee_rate=0.029, fee_fixed=0.30):
    """Breakdown charged for an online order; subtotal stays the order total."""
    tax = subtotal * tax_rate
    fee = (subtotal + tax + tip) * fee_rate + fee_fixed
    return OrderedDict(
        subtotal=subtotal,
        taxAmount=tax,
        convenienceFee=fee,
        tip=tip,
        stripeTotal=subtotal + tax + fee + tip,
    )
