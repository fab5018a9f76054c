from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import FailedPrecondition
from .models import JournalLine, Period


@receiver(pre_delete, sender=Period)
def prevent_delete_closed_period(sender, instance, **kwargs):
    """Block deletion of a closed or locked period with posted lines inside it."""
    if not instance.is_closed:
        return
    if JournalLine.objects.filter(
        company_id=instance.company_id,
        is_posted=True,
        entry_date__gte=instance.start_date,
        entry_date__lte=instance.end_date,
    ).exists():
        raise FailedPrecondition("Cannot delete a closed period with posted journal entries.")
