"""Multi-user RSS aggregator with a background feed poller."""

__version__ = "1.0.0"
