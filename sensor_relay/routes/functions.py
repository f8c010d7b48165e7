from fastapi import APIRouter, Depends
import logging

from sensor_relay.exceptions import NotFoundException
from sensor_relay.schemas.function_config import FunctionConfigIn, FunctionConfigOut
from sensor_relay.services.auth import get_store, get_current_user_id
from sensor_relay.services.store import EventStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{function_name}", response_model=FunctionConfigOut)
def get_function_config(
    function_name: str,
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    """Saved setup for a sensor function, read back on the next setup visit."""
    cfg = store.get_function_config(user_id, function_name)
    if not cfg:
        raise NotFoundException(f"No saved config for {function_name}")
    return FunctionConfigOut(**cfg)


@router.put("/{function_name}", response_model=FunctionConfigOut)
def save_function_config(
    function_name: str,
    request: FunctionConfigIn,
    user_id: str = Depends(get_current_user_id),
    store: EventStore = Depends(get_store),
):
    # merge: fields left out of the request keep their stored values
    store.save_function_config(user_id, function_name, request.model_dump(exclude_unset=True))
    logger.info(f"Saved config '{function_name}' for user {user_id}")
    return FunctionConfigOut(**store.get_function_config(user_id, function_name))
