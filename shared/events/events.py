"""
Post-commit side effects.

Services never call the notification, email or audit collaborators
directly. They return these events next to a successful result and the
boundary layer hands them to the EventDispatcher once the transaction
has committed.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class NotificationRequested:
    type: str
    title: str
    message: str
    link: Optional[str] = None
    # None means a broadcast to staff
    recipient_id: Optional[int] = None

    @property
    def is_broadcast(self) -> bool:
        return self.recipient_id is None


@dataclass(frozen=True)
class ConfirmationEmailRequested:
    email: str
    order_code: str
    amount: Decimal


@dataclass(frozen=True)
class ActivityRecorded:
    action: str
    entity_type: str
    entity_id: str
    user_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)
