"""Rule-based transaction categorization and spending breakdowns"""

import math
from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

from saverflow_engine.domain.models import CategorySpending, IrregularMerchant, Transaction

CATEGORIES = (
    "income",
    "housing",
    "transportation",
    "food",
    "utilities",
    "healthcare",
    "entertainment",
    "shopping",
    "subscriptions",
    "financial",
    "other",
)

# Categories a bank feed assigns that carry no information of their own
GENERIC_CATEGORIES = frozenset({"", "expense", "income"})


@dataclass(frozen=True)
class CategoryRule:
    category: str
    keywords: Tuple[str, ...]


# Order matters: first matching rule wins.
CATEGORIZATION_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        "income",
        ("payroll", "salary", "direct deposit", "income", "payment received",
         "transfer from", "refund", "reimbursement"),
    ),
    CategoryRule(
        "housing",
        ("rent", "mortgage", "property", "landlord", "housing", "apartment", "lease", "hoa"),
    ),
    CategoryRule(
        "transportation",
        ("uber", "lyft", "gas", "fuel", "parking", "metro", "transit", "subway",
         "taxi", "shell", "chevron", "bp", "exxon", "mobil", "car wash",
         "insurance", "dmv", "registration", "toll", "bridge"),
    ),
    CategoryRule(
        "food",
        ("restaurant", "cafe", "coffee", "starbucks", "dunkin", "mcdonalds",
         "burger", "pizza", "grocery", "whole foods", "trader joe", "safeway",
         "kroger", "walmart", "target", "costco", "food", "dining", "doordash",
         "uber eats", "grubhub", "instacart", "chipotle", "subway", "market"),
    ),
    CategoryRule(
        "utilities",
        ("electric", "power", "gas company", "water", "internet", "phone",
         "mobile", "verizon", "att", "t-mobile", "comcast", "spectrum",
         "utility", "energy", "bill payment", "sewage", "trash", "waste"),
    ),
    CategoryRule(
        "healthcare",
        ("pharmacy", "cvs", "walgreens", "doctor", "medical", "hospital",
         "health", "dental", "clinic", "urgent care", "prescription",
         "medicine", "insurance premium", "copay"),
    ),
    CategoryRule(
        "entertainment",
        ("netflix", "hulu", "disney", "spotify", "apple music", "amazon prime",
         "hbo", "theater", "cinema", "movie", "concert", "tickets", "gaming",
         "steam", "playstation", "xbox", "nintendo", "youtube", "gym",
         "fitness", "peloton", "sports", "recreation"),
    ),
    CategoryRule(
        "shopping",
        ("amazon", "ebay", "store", "retail", "clothing", "fashion", "shoes",
         "electronics", "best buy", "home depot", "lowes", "ikea", "furniture",
         "department store", "mall", "boutique", "nordstrom", "macys"),
    ),
    CategoryRule(
        "subscriptions",
        ("subscription", "membership", "monthly", "annual fee", "recurring",
         "adobe", "microsoft", "dropbox", "icloud", "patreon", "onlyfans"),
    ),
    CategoryRule(
        "financial",
        ("transfer", "payment", "credit card", "loan", "interest", "fee",
         "atm", "withdrawal", "deposit", "bank", "finance charge", "overdraft",
         "investment", "savings", "ach", "wire"),
    ),
)


def categorize_transaction(transaction: Transaction) -> str:
    """
    Classify a transaction into the fixed category taxonomy.

    A non-generic category already on the transaction is kept, so running
    this twice gives the same answer. Positive amounts default to income;
    expenses are matched by merchant keyword in rule order.
    """
    if transaction.category not in GENERIC_CATEGORIES:
        return transaction.category

    if transaction.amount > 0:
        return "income"

    merchant = transaction.merchant.lower()
    for rule in CATEGORIZATION_RULES:
        # Income keywords never apply to money going out
        if rule.category == "income" and transaction.amount < 0:
            continue
        if any(keyword in merchant for keyword in rule.keywords):
            return rule.category

    return "other"


def categorize_transactions(transactions: List[Transaction]) -> List[Transaction]:
    """Categorize a batch, preserving order"""
    return [replace(tx, category=categorize_transaction(tx)) for tx in transactions]


def analyze_spending_by_category(transactions: List[Transaction]) -> Dict[str, float]:
    """Total absolute expense per category (income is ignored)"""
    totals: Dict[str, float] = {}
    for tx in transactions:
        if tx.amount >= 0:
            continue
        category = categorize_transaction(tx)
        totals[category] = totals.get(category, 0.0) + abs(tx.amount)
    return totals


def get_top_spending_categories(transactions: List[Transaction], limit: int = 5) -> List[CategorySpending]:
    totals = analyze_spending_by_category(transactions)
    total_spending = sum(totals.values())

    ranked = [
        CategorySpending(
            category=category,
            amount=round(amount, 2),
            percentage=round(amount / total_spending * 100) if total_spending > 0 else 0,
        )
        for category, amount in totals.items()
    ]
    ranked.sort(key=lambda c: c.amount, reverse=True)
    return ranked[:limit]


def identify_irregular_merchants(transactions: List[Transaction]) -> List[IrregularMerchant]:
    """Merchants whose latest expense is more than two std-devs from their mean"""
    amounts_by_merchant: Dict[str, List[float]] = {}
    for tx in transactions:
        if tx.amount >= 0:
            continue
        amounts_by_merchant.setdefault(tx.merchant, []).append(abs(tx.amount))

    irregular = []
    for merchant, amounts in amounts_by_merchant.items():
        if len(amounts) < 2:
            continue

        avg = sum(amounts) / len(amounts)
        std_dev = math.sqrt(sum((a - avg) ** 2 for a in amounts) / len(amounts))
        last_amount = amounts[-1]

        if abs(last_amount - avg) > 2 * std_dev and std_dev > 10:
            irregular.append(
                IrregularMerchant(
                    merchant=merchant,
                    avg_amount=round(avg, 2),
                    last_amount=round(last_amount, 2),
                    variance=round(std_dev, 2),
                )
            )

    irregular.sort(key=lambda m: abs(m.last_amount - m.avg_amount), reverse=True)
    return irregular
