"""Core of the dynamic table gateway: config, domain types, persistence."""

__version__ = "0.1.0"
