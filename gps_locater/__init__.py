"""GPS Locater - record, label and manage GPS locations."""

__version__ = "1.0.0"
