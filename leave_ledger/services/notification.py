"""Best-effort notification dispatch.

Delivery is an external concern; this module only builds the messages and
hands them to the configured sink. A failing sink is logged and never fails
the operation that triggered it.
"""

# ruff: noqa: TC003
from __future__ import annotations

import enum
import logging
import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leave_ledger.models.enums import UserRole
from leave_ledger.services.employee import get_employee_service

logger = logging.getLogger(__name__)


class NotificationType(enum.StrEnum):
    """Kind of in-app notification."""

    LEAVE_REQUEST = "leave_request"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    GENERAL = "general"


class NotificationMessage(BaseModel):
    """A notification addressed to one user."""

    user_id: uuid.UUID
    organization_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    related_id: uuid.UUID | None = None


@runtime_checkable
class NotificationService(Protocol):
    """Interface for the Notification sink."""

    async def send(self, notification: NotificationMessage) -> None:
        """Deliver one notification."""
        ...


class InMemoryNotificationService:
    """In-memory stub that records every notification it receives."""

    def __init__(self) -> None:
        self.sent: list[NotificationMessage] = []

    async def send(self, notification: NotificationMessage) -> None:
        self.sent.append(notification)


_notification_service: NotificationService = InMemoryNotificationService()


def get_notification_service() -> NotificationService:
    """Return the configured Notification sink."""
    return _notification_service


def set_notification_service(service: NotificationService) -> None:
    """Override the service (for testing or production wiring)."""
    global _notification_service
    _notification_service = service


async def _dispatch(messages: list[NotificationMessage]) -> int:
    sink = get_notification_service()
    delivered = 0
    for message in messages:
        try:
            await sink.send(message)
        except Exception:
            logger.exception("Failed to deliver %s notification to user %s", message.type, message.user_id)
            continue
        delivered += 1
    return delivered


async def notify_org_admins(
    organization_id: uuid.UUID,
    *,
    kind: NotificationType,
    title: str,
    message: str,
    related_id: uuid.UUID | None = None,
) -> int:
    """Notify every org admin of the organization. Returns the number delivered."""
    try:
        users = await get_employee_service().list_users(organization_id)
    except Exception:
        logger.exception("Could not resolve org admins of %s for notification", organization_id)
        return 0
    messages = [
        NotificationMessage(
            user_id=user.id,
            organization_id=organization_id,
            type=kind,
            title=title,
            message=message,
            related_id=related_id,
        )
        for user in users
        if user.role == UserRole.ORG_ADMIN
    ]
    return await _dispatch(messages)


async def notify_employee(
    organization_id: uuid.UUID,
    employee_id: uuid.UUID,
    *,
    kind: NotificationType,
    title: str,
    message: str,
    related_id: uuid.UUID | None = None,
) -> int:
    """Notify the user account linked to an employee, if one exists."""
    try:
        users = await get_employee_service().list_users(organization_id)
    except Exception:
        logger.exception("Could not resolve user of employee %s for notification", employee_id)
        return 0
    messages = [
        NotificationMessage(
            user_id=user.id,
            organization_id=organization_id,
            type=kind,
            title=title,
            message=message,
            related_id=related_id,
        )
        for user in users
        if user.employee_id == employee_id
    ]
    return await _dispatch(messages)
