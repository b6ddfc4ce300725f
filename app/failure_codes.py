"""Source names used when classifying fetch failures in the intelligence pipeline."""

# The analysis cannot run without these; a failure aborts the request.
REQUIRED_SOURCES = [
    "account",
    "skus",
]

# Failures here degrade the analysis to empty/default inputs.
OPTIONAL_SOURCES = [
    "planning",
    "sku_extras",
    "campaigns",
    "previous_period",
    "daily_series",
    "web_summary",
    "channels",
    "retention",
    "funnel",
]
