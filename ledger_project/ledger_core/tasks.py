import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    max_retries=8,
)
def record_audit_events(self, events):
    """
    Persist audit events queued by a committed ledger transaction.
    Delivery is at least once; event_id makes redelivery a no-op.
    """
    # import models lazily to avoid circular imports at module import time
    from .models import AuditLog

    created = 0
    for event in events:
        _, was_created = AuditLog.objects.get_or_create(
            event_id=event["event_id"],
            defaults={
                "company_id": event["company_id"],
                "user_id": event.get("user_id"),
                "action": event["action"],
                "object_type": event["object_type"],
                "object_id": event["object_id"],
                "changes": event.get("changes"),
            },
        )
        created += int(was_created)
    logger.debug("recorded %d of %d audit events", created, len(events))
    return created
