# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification API endpoints.

- GET / - Own notifications
- GET /unread-count - Own unread count
- PUT /read-all - Mark all own notifications read
- PUT /{notification_id}/read - Mark one notification read
- POST / - Send a notification (teacher/admin)
- POST /bulk - Send to many users (admin)
- GET /preferences - Own delivery preferences
- PUT /preferences - Update own delivery preferences
- DELETE /cleanup - Purge old read notifications (admin)
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from edupath.api.dependencies import (
    AdminUser,
    AuthenticatedUser,
    TeacherOrAdmin,
    get_notification_service,
)
from edupath.domains.notification import (
    NotificationAccessDeniedError,
    NotificationNotFoundError,
    NotificationService,
    NotificationServiceError,
    RecipientNotFoundError,
)
from edupath.models.common import CountResponse
from edupath.models.notification import (
    BulkNotificationRequest,
    BulkSendResult,
    NotificationFilters,
    NotificationListResponse,
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
    NotificationResponse,
    NotificationType,
    SendNotificationRequest,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Service = Annotated[NotificationService, Depends(get_notification_service)]


def _handle_error(error: NotificationServiceError) -> HTTPException:
    """Map a notification service error to an HTTP error."""
    if isinstance(error, (NotificationNotFoundError, RecipientNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, NotificationAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=NotificationListResponse, summary="List notifications")
async def list_notifications(
    current_user: AuthenticatedUser,
    service: Service,
    notification_type: NotificationType | None = Query(None),
    is_read: bool | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> NotificationListResponse:
    """List the current user's notifications, newest first."""
    filters = NotificationFilters(
        notification_type=notification_type,
        is_read=is_read,
        start_date=start_date,
        end_date=end_date,
    )
    items, total = await service.get_user_notifications(
        current_user.id,
        filters,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Unread count")
async def unread_count(
    current_user: AuthenticatedUser,
    service: Service,
) -> UnreadCountResponse:
    """Number of unread notifications for the current user."""
    return UnreadCountResponse(unread_count=await service.get_unread_count(current_user.id))


@router.put("/read-all", response_model=CountResponse, summary="Mark all as read")
async def mark_all_read(
    current_user: AuthenticatedUser,
    service: Service,
) -> CountResponse:
    """Mark every unread notification of the current user as read."""
    count = await service.mark_all_as_read(current_user.id)
    return CountResponse(count=count, message=f"{count} notifications marked as read")


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark as read",
)
async def mark_read(
    notification_id: str,
    current_user: AuthenticatedUser,
    service: Service,
) -> NotificationResponse:
    """Mark one of the current user's notifications as read."""
    try:
        return await service.mark_as_read(notification_id, current_user.id)
    except NotificationServiceError as e:
        raise _handle_error(e)


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send notification",
)
async def send_notification(
    data: SendNotificationRequest,
    current_user: TeacherOrAdmin,
    service: Service,
) -> NotificationResponse:
    """Send a notification through every channel the recipient allows."""
    try:
        return await service.send_notification(
            user_id=data.user_id,
            title=data.title,
            message=data.message,
            notification_type=data.notification_type,
            reference_id=data.reference_id,
            reference_type=data.reference_type,
        )
    except NotificationServiceError as e:
        raise _handle_error(e)


@router.post("/bulk", response_model=BulkSendResult, summary="Send bulk notifications")
async def send_bulk(
    data: BulkNotificationRequest,
    current_user: AdminUser,
    service: Service,
) -> BulkSendResult:
    """Send one notification to many users."""
    logger.info("Bulk notification to %d users by %s", len(data.user_ids), current_user.id)
    return await service.send_bulk_notifications(data)


@router.get(
    "/preferences",
    response_model=NotificationPreferenceResponse,
    summary="Get preferences",
)
async def get_preferences(
    current_user: AuthenticatedUser,
    service: Service,
) -> NotificationPreferenceResponse:
    """Delivery preferences of the current user."""
    return await service.get_preferences(current_user.id)


@router.put(
    "/preferences",
    response_model=NotificationPreferenceResponse,
    summary="Update preferences",
)
async def update_preferences(
    data: NotificationPreferenceUpdate,
    current_user: AuthenticatedUser,
    service: Service,
) -> NotificationPreferenceResponse:
    """Update delivery preferences of the current user."""
    return await service.update_preferences(current_user.id, data)


@router.delete("/cleanup", response_model=CountResponse, summary="Clean up notifications")
async def cleanup(
    current_user: AdminUser,
    service: Service,
    days_old: int = Query(30, ge=1, le=365),
) -> CountResponse:
    """Delete read notifications older than the given number of days."""
    count = await service.cleanup_old_notifications(days_old=days_old)
    return CountResponse(count=count, message=f"{count} old notifications deleted")
