"""
Recurring outbound HTTP jobs with retries, run history and restart-safe
scheduling.
"""

__version__ = "0.1.0"
