"""Community events calendar aggregator."""

__version__ = "0.1.0"
