# filename: app/services/categorize.py
"""
Rule-based auto-categorization for imported rows.

Design goals:
- Safe: never raises; text it can't place gets the fallback category
- Deterministic: merchant names win over generic keywords, first rule wins
- Small: plain substring rules, no learning, no network

Public API:
    categorize(description, type) -> (category: str, confidence: float, method: str)
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

from models import TransactionType

FALLBACK_CATEGORY = "Uncategorized"
INCOME_CATEGORY = "Income"

# category -> (merchants, keywords); checked in this order
CATEGORY_RULES: dict[str, tuple[list[str], list[str]]] = {
    "Income": (
        [],
        ["salary", "payroll", "wages", "dividend", "interest paid", "refund"],
    ),
    "Food & Dining": (
        ["starbucks", "mcdonalds", "kfc", "subway", "burger king", "dominos", "uber eats", "deliveroo"],
        ["restaurant", "dining", "cafe", "pizza", "burger", "coffee"],
    ),
    "Groceries": (
        ["lidl", "aldi", "tesco", "carrefour", "rewe", "whole foods"],
        ["grocery", "groceries", "supermarket"],
    ),
    "Shopping": (
        ["amazon", "ebay", "zalando", "ikea"],
        ["shopping", "purchase"],
    ),
    "Transportation": (
        ["uber", "lyft", "bolt"],
        ["taxi", "cab", "parking", "metro", "train ticket"],
    ),
    "Subscriptions": (
        ["netflix", "spotify", "disney", "youtube premium", "prime video"],
        ["subscription", "renewal"],
    ),
    "Entertainment": (
        ["steam", "cinema"],
        ["movie", "concert", "streaming"],
    ),
    "Bills & Utilities": (
        ["vodafone", "verizon"],
        ["electricity", "water bill", "utility", "internet", "phone bill", "recharge"],
    ),
    "Insurance": (
        [],
        ["insurance", "premium", "policy"],
    ),
    "Healthcare": (
        [],
        ["pharmacy", "hospital", "clinic", "doctor", "dentist"],
    ),
    "Education": (
        ["coursera", "udemy"],
        ["tuition", "course", "school"],
    ),
    "Travel": (
        ["airbnb", "booking.com", "ryanair", "easyjet", "lufthansa"],
        ["flight", "hotel", "travel"],
    ),
    "Fuel": (
        ["shell", "esso", "aral"],
        ["petrol", "diesel", "fuel", "gas station"],
    ),
    "Cash": (
        ["atm"],
        ["cash withdrawal"],
    ),
}

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _clean_text(s: Any, max_len: int = 400) -> str:
    return str(s or "").strip().lower()[:max_len]


def _contains(text: str, tokens: list[str], needle: str) -> bool:
    # Short names (atm, kfc, cab, ...) only count as a whole word
    if len(needle) <= 4 and " " not in needle:
        return needle in tokens
    return needle in text


def categorize(
    description: Optional[str],
    type: Any = None,
) -> Tuple[str, float, str]:
    """
    Pick a category for a transaction from its description.

    Returns (category, confidence, method). Merchant matches score 0.9,
    keyword matches 0.7; unmatched income falls back to "Income" (0.5) and
    anything else to "Uncategorized" (0.3).
    """
    text = _clean_text(description)
    tokens = _TOKEN_RE.findall(text)

    if text:
        for category, (merchants, _) in CATEGORY_RULES.items():
            for merchant in merchants:
                if _contains(text, tokens, merchant):
                    return category, 0.9, "merchant_match"

        for category, (_, keywords) in CATEGORY_RULES.items():
            for keyword in keywords:
                if _contains(text, tokens, keyword):
                    return category, 0.7, "keyword_match"

    if type == TransactionType.INCOME:
        return INCOME_CATEGORY, 0.5, "default_income"
    return FALLBACK_CATEGORY, 0.3, "default"
