"""
Tier labels for overall scores.
"""

TIER_THRESHOLDS = [
    (75, "Champion"),
    (60, "Contender"),
    (45, "Rising"),
    (0, "Developing"),
]

TIER_NAMES = [name for _, name in TIER_THRESHOLDS]

TIER_DESCRIPTIONS = {
    "Champion": ">=75: Leading across most categories",
    "Contender": ">=60: Strong, with a few gaps",
    "Rising": ">=45: Mixed performance",
    "Developing": "<45: Lagging on most categories",
}


def get_tier(score: float) -> str:
    """Map a 0-100 score to its tier; thresholds are checked top-down."""
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return "Developing"
