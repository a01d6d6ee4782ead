"""Migrate BAW process apps and their toolkit dependencies between servers."""

__version__ = "1.0.0"
