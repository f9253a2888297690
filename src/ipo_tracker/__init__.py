"""ipo-tracker: IPO calendar sync and AI-assisted IPO analysis."""

__version__ = "0.1.0"
