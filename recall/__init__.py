"""Spaced-repetition review engine: scheduling, due selection and reminders."""

__version__ = "0.1.0"
