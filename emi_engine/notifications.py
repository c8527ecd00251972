"""
Notification Bridge Module

Turns "payment recorded" and "due soon" domain events into notifications and
hands them to channel providers. Delivery is fire-and-forget: a provider
failure is logged and never reaches the operation that raised the event.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from enum import Enum
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
import uuid
import logging

import httpx

from .events import DomainEvent, EventDispatcher, EventPayload

logger = logging.getLogger("emi.notifications")


class NotificationType(Enum):
    """Types of EMI notifications"""
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_DUE = "payment_due"


class NotificationStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class Notification:
    """Individual notification instance"""
    notification_type: NotificationType
    recipient_id: str  # Customer ID
    subject: str
    body: str
    loan_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notification_id": self.id,
            "type": self.notification_type.value,
            "recipient_id": self.recipient_id,
            "loan_id": self.loan_id,
            "subject": self.subject,
            "body": self.body,
            "timestamp": self.created_at.isoformat(),
            "metadata": self.metadata
        }


# (subject, body) per notification type, formatted with the event data
TEMPLATES = {
    NotificationType.PAYMENT_RECEIVED: (
        "EMI payment received",
        "Payment of {amount} received on {payment_date} for EMI #{emi_number} "
        "of loan {loan_id} (due {due_date})."
    ),
    NotificationType.PAYMENT_DUE: (
        "EMI due soon",
        "EMI #{emi_number} of {amount} for loan {loan_id} is due on {due_date}."
    ),
}

EVENT_TYPES = {
    DomainEvent.EMI_PAYMENT_RECORDED: NotificationType.PAYMENT_RECEIVED,
    DomainEvent.EMI_DUE_SOON: NotificationType.PAYMENT_DUE,
}


class ChannelProvider(ABC):
    """Abstract base class for notification channel providers"""

    @abstractmethod
    def send(self, notification: Notification) -> bool:
        """Send notification via this channel. Returns True if successful."""
        pass

    def close(self) -> None:
        pass


class LogChannelProvider(ChannelProvider):
    """Logging channel provider for development and unconfigured deployments"""

    def __init__(self, channel_logger: Optional[logging.Logger] = None):
        self.logger = channel_logger or logger

    def send(self, notification: Notification) -> bool:
        """Log the notification instead of actually sending"""
        self.logger.info(
            f"Notification to {notification.recipient_id}: "
            f"{notification.subject} | {notification.body[:100]}"
        )
        return True


class WebhookChannelProvider(ChannelProvider):
    """Webhook channel provider for the external delivery service"""

    def __init__(self, url: str, timeout: float = 2.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, notification: Notification) -> bool:
        """Send notification via webhook POST"""
        try:
            response = self._client.post(
                self.url,
                json=notification.to_dict(),
                headers={"Content-Type": "application/json"}
            )
            if response.status_code >= 300:
                logger.warning(f"Webhook returned {response.status_code} for notification {notification.id}")
                return False
            return True
        except httpx.HTTPError as e:
            logger.error(f"Webhook send failed: {e}")
            return False

    def close(self) -> None:
        self._client.close()


class NotificationService:
    """
    Subscribes to the event dispatcher and delivers EMI notifications.

    With background=True delivery runs on a small worker pool so publishers
    never wait on a provider; tests use background=False for determinism.
    """

    def __init__(
        self,
        providers: Optional[List[ChannelProvider]] = None,
        background: bool = True,
        max_workers: int = 2
    ):
        self.providers = providers if providers is not None else [LogChannelProvider()]
        self.background = background
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="emi-notify") if background else None

    def register(self, dispatcher: EventDispatcher) -> None:
        for event_type in EVENT_TYPES:
            dispatcher.subscribe(event_type, self.handle_event)

    def handle_event(self, event: EventPayload) -> None:
        notification = self.build_notification(event)
        if notification is None:
            return
        if self._executor:
            self._executor.submit(self.deliver, notification)
        else:
            self.deliver(notification)

    def build_notification(self, event: EventPayload) -> Optional[Notification]:
        notification_type = EVENT_TYPES.get(event.event_type)
        if notification_type is None:
            return None

        subject, body = TEMPLATES[notification_type]
        try:
            body = body.format(**event.data)
        except KeyError as e:
            logger.error(f"Template rendering failed - missing key: {e}")
            return None

        return Notification(
            notification_type=notification_type,
            recipient_id=event.data.get("customer_id", ""),
            subject=subject,
            body=body,
            loan_id=event.data.get("loan_id", ""),
            metadata={"event_id": event.event_id, **event.data}
        )

    def deliver(self, notification: Notification) -> Notification:
        """Send through every provider; any success marks the notification sent"""
        sent = False
        for provider in self.providers:
            try:
                sent = provider.send(notification) or sent
            except Exception as e:
                logger.error(f"Provider {type(provider).__name__} failed for notification {notification.id}: {e}")
        notification.status = NotificationStatus.SENT if sent else NotificationStatus.FAILED
        return notification

    def shutdown(self) -> None:
        if self._executor:
            self._executor.shutdown(wait=True)
        for provider in self.providers:
            provider.close()


def create_notification_service(webhook_url: str = "", timeout: float = 2.0,
                                background: bool = True) -> NotificationService:
    """Webhook delivery when a URL is configured, log delivery otherwise"""
    providers: List[ChannelProvider] = [LogChannelProvider()]
    if webhook_url:
        providers.append(WebhookChannelProvider(webhook_url, timeout=timeout))
    return NotificationService(providers=providers, background=background)
