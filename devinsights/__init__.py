"""DevInsights: GitHub activity analytics behind a two-tier cache."""

__version__ = "1.0.0"
