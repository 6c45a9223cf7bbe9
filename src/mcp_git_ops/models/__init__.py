"""Protocol level models for MCP Git Ops"""

from .notifications import CancelledNotification, CancelledParams, parse_client_notification

__all__ = ["CancelledNotification", "CancelledParams", "parse_client_notification"]
