from fastapi import APIRouter, Depends

from ...api.deps import get_current_user, get_notification_service, raise_for_result
from ...models.user import User
from ...schemas.common import MessageResponse, OperationResult
from ...schemas.notification import NotificationList
from ...services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("", response_model=NotificationList)
async def get_notifications(
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    """Notifications of the current user, newest first."""
    return service.get_notifications(current_user.id, unread_only=unread_only)

@router.patch("/{notification_id}/read", response_model=OperationResult)
async def mark_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    return raise_for_result(service.mark_as_read(notification_id, current_user.id))

@router.post("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service)
):
    updated = service.mark_all_as_read(current_user.id)
    return {"message": f"{updated} notifications marked as read"}
