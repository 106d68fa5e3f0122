"""
Shared service helpers - actor checks and store error translation
"""
from contextlib import contextmanager
import logging

from hotelpms.errors import NetworkError, NotAuthenticatedError
from hotelpms.store.base import StoreError

logger = logging.getLogger(__name__)


def require_actor(actor_id) -> str:
    """Refuse a mutation without an authenticated actor"""
    if actor_id is None or not str(actor_id).strip():
        raise NotAuthenticatedError()
    return str(actor_id)


@contextmanager
def network_errors(action: str):
    """Translate store failures into NetworkError carrying the underlying message"""
    try:
        yield
    except StoreError as e:
        logger.warning(f"{action} failed: {e}")
        raise NetworkError(f"Failed to {action}: {e}") from e
