from typing import Any, Dict, Literal, Optional, Union
import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CancelledParams(BaseModel):
    """Parameters for a cancelled notification."""

    requestId: Union[str, int]
    reason: Optional[str] = None


class CancelledNotification(BaseModel):
    """
    A notification indicating that a previously sent request has been cancelled.
    """

    jsonrpc: Literal["2.0"] = "2.0"
    method: Literal["notifications/cancelled"] = "notifications/cancelled"
    params: CancelledParams


def parse_client_notification(data: Dict[str, Any]) -> Optional[CancelledNotification]:
    """
    Parse a client notification from raw data based on its method field.

    Args:
        data: Raw notification data containing 'method' field

    Returns:
        Parsed notification, or None for methods this server does not act on

    Raises:
        ValidationError: If a known notification is malformed
    """
    notification_method = data.get("method", "")

    if notification_method == "notifications/cancelled":
        return CancelledNotification.model_validate(data)

    logger.debug(f"Ignoring notification method: {notification_method}")
    return None
