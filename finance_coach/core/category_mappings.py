"""
Static lookup tables shared by the insight and goals services.

Everything here is read-only process-wide configuration: mappings are wrapped
in ``MappingProxyType`` and lists are tuples/frozensets, so no caller can
mutate them at runtime.
"""

from types import MappingProxyType

# Categories treated as optional/reducible spend
DISCRETIONARY_CATEGORIES = (
    "Restaurants",
    "Coffee",
    "Rideshare",
    "Entertainment",
    "Subscriptions",
)
DISCRETIONARY_SET = frozenset(DISCRETIONARY_CATEGORIES)

SUBSCRIPTIONS_CATEGORY = "Subscriptions"
RIDESHARE_CATEGORY = "Rideshare"
COFFEE_CATEGORY = "Coffee"

FEE_KEYWORDS = ("fee", "atm fee", "overdraft", "service fee")
TRIAL_KEYWORDS = ("trial", "renewal", "promo")
COFFEE_KEYWORDS = ("starbucks", "dunkin", "coffee", "peet's")

# Known brands -> generic phrasing, so insight copy never names a merchant
MERCHANT_REDACTION_MAP = MappingProxyType(
    {
        "starbucks": "coffee shop",
        "dunkin": "coffee shop",
        "dunkin donuts": "coffee shop",
        "peet's coffee": "coffee shop",
        "local coffee": "coffee shop",
        "netflix": "streaming service",
        "spotify": "music service",
        "amazon": "online retailer",
        "apple icloud": "cloud storage",
        "uber": "rideshare service",
        "lyft": "rideshare service",
        "whole foods": "grocery store",
        "target": "retail store",
        "costco": "wholesale store",
        "chipotle": "restaurant",
        "sweetgreen": "restaurant",
        "panera": "restaurant",
        "mcdonald's": "restaurant",
        "subway": "restaurant",
        "olive garden": "restaurant",
        "local bistro": "restaurant",
        "shell": "gas station",
        "cvs": "pharmacy",
        "employer": "employer",
    }
)
UNKNOWN_MERCHANT_LABEL = "a service"

# Lower = easier to cut
ESSENTIALNESS = MappingProxyType(
    {
        "Restaurants": 0.3,
        "Coffee": 0.2,
        "Rideshare": 0.4,
        "Entertainment": 0.3,
        "Subscriptions": 0.5,
    }
)
DEFAULT_ESSENTIALNESS = 0.5

MICRO_ACTIONS = MappingProxyType(
    {
        "Restaurants": (
            "Cap dining-out to 2 times per week",
            "Swap 1 meal per week to home-cooked",
        ),
        "Coffee": (
            "Brew at home 3 times per week",
            "Keep 2 café visits as treats",
        ),
        "Rideshare": (
            "Replace 2 weekend rides with transit",
            "Consider carpooling for regular trips",
        ),
        "Entertainment": (
            "Skip one ticketed event this month",
            "Use free or low-cost entertainment options",
        ),
        "Subscriptions": (
            "Pause or downgrade 1 subscription plan",
            "Review and cancel unused trial subscriptions",
        ),
    }
)

# {cut} and {pct} are filled in by the optimizer
CUT_RATIONALES = MappingProxyType(
    {
        "Restaurants": "Reduce dining out by ${cut} ({pct}%) while maintaining some social meals",
        "Coffee": "Cut coffee spending by ${cut} ({pct}%) by brewing more at home",
        "Rideshare": "Reduce rideshare costs by ${cut} ({pct}%) using alternative transportation",
        "Entertainment": "Lower entertainment spending by ${cut} ({pct}%) with more free activities",
        "Subscriptions": "Trim subscription costs by ${cut} ({pct}%) by pausing unused services",
    }
)


def micro_actions_for(category: str) -> list[str]:
    actions = MICRO_ACTIONS.get(category)
    if actions is None:
        return [f"Reduce {category.lower()} spending", "Look for cost-saving alternatives"]
    return list(actions)


def rationale_for(category: str, cut: int, pct: int) -> str:
    template = CUT_RATIONALES.get(category)
    if template is None:
        return f"Reduce {category.lower()} spending by ${cut} ({pct}%)"
    return template.format(cut=cut, pct=pct)
