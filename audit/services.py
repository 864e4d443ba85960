import logging

from django.db import transaction

from .models import ActivityLog

logger = logging.getLogger(__name__)


class AuditService:
    """Records activity; a failure here never reaches the caller."""

    @staticmethod
    def record(actor, action, entity_type, entity_id=None, detail=""):
        try:
            # Own savepoint so a failed insert leaves the caller's transaction usable
            with transaction.atomic():
                return ActivityLog.objects.create(
                    user=actor,
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    detail=detail or "",
                )
        except Exception:
            logger.warning(
                "Failed to log activity %s on %s#%s",
                action,
                entity_type,
                entity_id,
                exc_info=True,
            )
            return None

    @staticmethod
    def history(entity_type, entity_id):
        return ActivityLog.objects.filter(entity_type=entity_type, entity_id=entity_id)
