"""Spending statistics computed inside the aggregation worker.

Everything here is a pure function of its input so it can run in a separate
process: requests and responses are plain dictionaries.

Request:  {"type": "compute", "payload": {"transactions": [...]}}
Response: {"type": "stats", "payload": {"monthlyTotal", "categoryTotals",
           "average", "topCategory", "trend"}}
"""

import math
from datetime import date
from typing import Any, Dict, List, Optional
from dateutil.parser import isoparse

UNCATEGORIZED_KEY = "uncategorized"
TREND_MONTHS = 3


def month_key(value: Any) -> Optional[str]:
    """Return the YYYY-MM bucket of an ISO date string, or None if unparseable."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = isoparse(value.strip())
    except ValueError:
        return None
    return f"{parsed.year:04d}-{parsed.month:02d}"


def coerce_amount(value: Any) -> float:
    """Numeric amounts pass through; anything else counts as zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_stats(transactions: List[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    """Aggregate a transaction list in a single pass.

    Args:
        transactions: Transaction dictionaries with "amount", "catId" and "date".
        today: Reference day for monthlyTotal; defaults to the system date.

    Returns:
        Dictionary with monthlyTotal, categoryTotals (keyed by catId),
        average (rounded), topCategory (None when empty) and trend (last
        three months, oldest first).
    """
    today = today or date.today()
    current_month = f"{today.year:04d}-{today.month:02d}"

    total = 0
    count = 0
    category_totals: Dict[str, float] = {}
    month_totals: Dict[str, float] = {}

    for transaction in transactions:
        amount = coerce_amount(transaction.get("amount"))
        total += amount
        count += 1

        cat_id = transaction.get("catId") or UNCATEGORIZED_KEY
        category_totals[cat_id] = category_totals.get(cat_id, 0) + amount

        key = month_key(transaction.get("date"))
        if key is not None:
            month_totals[key] = month_totals.get(key, 0) + amount

    top_category = None
    top_amount = None
    for cat_id, amount in category_totals.items():
        # strict comparison keeps the first-seen category on ties
        if top_amount is None or amount > top_amount:
            top_category, top_amount = cat_id, amount

    trend = [
        {"month": key, "total": month_totals[key]}
        for key in sorted(month_totals)[-TREND_MONTHS:]
    ]

    return {
        "monthlyTotal": month_totals.get(current_month, 0),
        "categoryTotals": category_totals,
        "average": round_half_up(total / count) if count else 0,
        "topCategory": top_category,
        "trend": trend,
    }


def handle_message(message: Any) -> Optional[Dict[str, Any]]:
    """Answer one worker request.

    Returns:
        A stats response for compute requests, None for any other message.
    """
    if not isinstance(message, dict) or message.get("type") != "compute":
        return None

    payload = message.get("payload") or {}
    response = {
        "type": "stats",
        "payload": compute_stats(payload.get("transactions") or []),
    }
    if "requestId" in message:
        response["requestId"] = message["requestId"]
    return response
