"""Recurring household chore tracker: status engine and completion transactor."""

__version__ = "0.1.0"
