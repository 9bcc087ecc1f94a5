"""
Application constants for the sports feed engine.
"""

UPSTREAM_BASE_URL = "https://sport-highlights-api.p.rapidapi.com"

# Domains known at process start; each gets a SubscriptionState up front.
DEFAULT_SPORTS = (
    "football",
    "basketball",
    "hockey",
    "rugby",
    "handball",
    "volleyball",
    "cricket",
    "baseball",
)

# Collection wrappers the provider has been seen to use
COLLECTION_KEYS = ("data", "matches", "highlights", "result", "results", "items")

HIGHLIGHTS_MAX_LIMIT = 40
HIGHLIGHTS_DEFAULT_LIMIT = 20
DATE_FORMAT = "%Y-%m-%d"
