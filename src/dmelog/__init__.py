"""dmelog: datalog sessions, CSV interchange, and chart preparation for BMW DME logs."""

__version__ = "0.1.0"
