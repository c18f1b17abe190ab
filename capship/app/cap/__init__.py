"""
cap — Common Alerting Protocol alert documents (CAP 1.2 and 1.1).
"""

from .models import Alert, Alert11, Area, Info, Resource, parse_alert, parse_alert11, parse_any_alert

__all__ = [
    "Alert",
    "Alert11",
    "Area",
    "Info",
    "Resource",
    "parse_alert",
    "parse_alert11",
    "parse_any_alert",
]
