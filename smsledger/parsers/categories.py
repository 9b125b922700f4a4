"""Keyword-based category and recurrence detection.

Keywords match at word starts, so "rent" hits "rental" but not "current".
"""

import re

from smsledger.models import TransactionCategory

# Checked in order; first keyword hit wins
CATEGORY_KEYWORDS: dict[TransactionCategory, list[str]] = {
    TransactionCategory.FOOD_DINING: [
        "restaurant", "cafe", "coffee", "food", "dinner", "lunch", "breakfast",
        "swiggy", "zomato", "uber eat", "pizza", "burger", "grocery", "bigbasket",
        "supermarket", "dining", "kitchen", "eatery", "dhaba", "bakery",
        "mcdonalds", "kfc", "dominos", "subway", "starbucks",
    ],
    TransactionCategory.SHOPPING: [
        "shop", "store", "mall", "mart", "amazon", "flipkart", "myntra", "ajio",
        "retail", "clothing", "fashion", "apparel", "electronics", "furniture",
        "jewel", "footwear", "nykaa", "croma", "reliance digital", "tata cliq",
    ],
    TransactionCategory.BILLS_UTILITIES: [
        "bill", "utility", "electricity", "water", "broadband", "internet", "wifi",
        "recharge", "dth", "rent", "maintenance", "insurance", "premium", "emi",
        "loan", "airtel", "jio", "vodafone", "bsnl", "tata sky", "lic", "bescom",
    ],
    TransactionCategory.ENTERTAINMENT: [
        "movie", "cinema", "theatre", "netflix", "amazon prime", "hotstar",
        "spotify", "gaana", "concert", "bookmyshow", "gaming", "entertainment",
    ],
    TransactionCategory.TRANSPORTATION: [
        "uber", "ola", "taxi", "cab", "metro", "railway", "irctc", "flight",
        "airline", "petrol", "diesel", "fuel", "parking", "toll", "fastag",
        "indigo", "makemytrip", "redbus",
    ],
    TransactionCategory.HEALTH: [
        "hospital", "clinic", "doctor", "medical", "pharmacy", "medicine",
        "dental", "diagnostic", "gym", "fitness", "apollo", "medplus", "pharmeasy",
    ],
    TransactionCategory.EDUCATION: [
        "school", "college", "university", "tuition", "course", "coaching",
        "exam fee", "academy", "institute", "udemy", "coursera",
    ],
}

RECURRING_INDICATORS = [
    "emi", "monthly", "subscription", "recurring", "auto-debit", "auto debit",
    "autopay", "standing instruction", "si debit", "mandate", "automatic payment",
]

RECURRING_MERCHANTS = [
    "netflix", "amazon prime", "hotstar", "spotify", "google play", "insurance",
    "rent", "electricity", "broadband", "internet", "dth", "loan", "emi",
]


def _word_start_pattern(keywords: list[str]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + ")")


_CATEGORY_PATTERNS = [(category, _word_start_pattern(keywords)) for category, keywords in CATEGORY_KEYWORDS.items()]
_RECURRING_INDICATOR_PATTERN = _word_start_pattern(RECURRING_INDICATORS)
_RECURRING_MERCHANT_PATTERN = _word_start_pattern(RECURRING_MERCHANTS)
_CASH_WITHDRAWAL = re.compile(r"\batm\b|cash withdrawal")


def detect_category(message: str, merchant_name: str | None = None) -> TransactionCategory:
    """Map a message and its merchant onto a spending category."""
    combined = (message or "").lower()
    if merchant_name:
        combined += " " + merchant_name.lower()

    # Cash withdrawals are never spending, whatever the ATM location says
    if _CASH_WITHDRAWAL.search(combined):
        return TransactionCategory.OTHERS

    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(combined):
            return category

    # Unknown UPI payee
    if re.search(r"\bupi\b", combined):
        return TransactionCategory.SHOPPING

    return TransactionCategory.OTHERS


def is_recurring(message: str, description: str = "") -> bool:
    """Check whether a transaction looks like a recurring payment."""
    if _RECURRING_INDICATOR_PATTERN.search((message or "").lower()):
        return True
    return bool(_RECURRING_MERCHANT_PATTERN.search((description or "").lower()))
