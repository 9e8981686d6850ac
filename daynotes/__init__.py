"""Per-day journal: a rolling window of days, one plain-text note per day."""

__version__ = "0.3.0"
