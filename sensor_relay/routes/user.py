from fastapi import APIRouter, Depends

from sensor_relay.exceptions import NotFoundException
from sensor_relay.schemas.user import UserStatusOut
from sensor_relay.services.auth import get_store, get_current_user_id
from sensor_relay.services.store import EventStore
from sensor_relay.services import audit

router = APIRouter()


@router.get("/me/status", response_model=UserStatusOut)
def get_my_status(
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    status = store.get_user_status(user_id)
    if status is None:
        raise NotFoundException("User not found")
    return UserStatusOut(**status)


@router.post("/me/status/reset-mail", response_model=UserStatusOut)
def reset_mail_flag(
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    """Clear the mail flag after the user has emptied the mailbox."""
    store.merge_user_fields(user_id, {"mail_detected": False})
    audit.log_mail_reset(user_id)
    return UserStatusOut(**store.get_user_status(user_id))
