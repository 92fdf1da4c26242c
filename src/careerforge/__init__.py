"""CareerForge: stable, validated AI results for career tracking."""

__version__ = "0.1.0"
