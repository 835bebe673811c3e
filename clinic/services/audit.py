import logging
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model
from django.db import transaction

from clinic.models import SystemLog

User = get_user_model()
logger = logging.getLogger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id=None, detail: Optional[Dict[str, Any]]=None) -> Optional[SystemLog]:
    """Write a SystemLog row.  Failures are logged and never reach the caller."""
    try:
        with transaction.atomic():
            return SystemLog.objects.create(
                user=user if getattr(user, 'pk', None) else None,
                action=action,
                object_type=object_type,
                object_id=str(object_id) if object_id is not None else None,
                detail=detail or {},
            )
    except Exception:
        logger.exception('Could not write system log entry for %s', action)
        return None
