def log_action(tx, *, action: str, instance, changes: dict | None = None):
    """
    Central audit logger.
    Queues the event on the ledger transaction; it is written after
    commit and dropped if the transaction rolls back.
    """
    tx.record(
        action=action,
        object_type=instance.__class__.__name__,
        object_id=instance.pk,
        changes=changes,
    )
