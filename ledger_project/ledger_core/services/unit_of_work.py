"""
Explicit ledger transaction handle.

Every engine function takes a `LedgerTransaction` as its first argument
and does all of its reads and writes through it, so one logical
operation (post, reverse, apply deductions...) is exactly one
`transaction.atomic()` block on one connection.
"""
import json
import logging
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction

from ..exceptions import InvalidArgument, PermissionDenied
from ..models import EntityMembership

logger = logging.getLogger(__name__)

# Roles allowed to run each family of operations
POSTING_ROLES = frozenset({"owner", "admin", "accountant"})
PAYROLL_ROLES = POSTING_ROLES | {"hr_manager"}
ACCOUNT_ADMIN_ROLES = frozenset({"owner", "admin"})

# Postgres serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}


class LedgerTransaction:
    """
    Tenant, actor, role and DB alias of one ledger operation, plus the
    audit events it will emit once (and only if) it commits.
    """

    def __init__(self, company, actor=None, role=None, using=DEFAULT_DB_ALIAS):
        self.company = company
        self.actor = actor
        self.role = role
        self.using = using
        self.audit_events = []

    def __repr__(self):
        return f"<LedgerTransaction company={self.company.pk} role={self.role}>"

    # ----- data access -----
    def query(self, model):
        """Unscoped queryset; callers check tenant ownership themselves."""
        return model._default_manager.using(self.using)

    def scoped(self, model):
        """Rows of this tenant only."""
        return self.query(model).filter(company=self.company)

    def locked(self, model):
        """Unscoped queryset with SELECT ... FOR UPDATE."""
        return self.query(model).select_for_update()

    def owns(self, instance):
        return instance.company_id == self.company.pk

    # ----- audit outbox -----
    def record(self, *, action, object_type, object_id, changes=None):
        self.audit_events.append({
            "event_id": uuid.uuid4().hex,
            "company_id": self.company.pk,
            "user_id": getattr(self.actor, "pk", None),
            "action": action,
            "object_type": object_type,
            "object_id": str(object_id),
            # Decimal / date → str so the payload survives the broker
            "changes": json.loads(json.dumps(changes, cls=DjangoJSONEncoder)) if changes else None,
        })

    def schedule_audit_delivery(self):
        if not self.audit_events:
            return
        events = list(self.audit_events)
        company_id = self.company.pk

        def deliver():
            _deliver_audit_events(events, company_id)

        transaction.on_commit(deliver, using=self.using, robust=True)


def _deliver_audit_events(events, company_id=None):
    """Hand committed events to the broker; the ledger write already stands."""
    from ..tasks import record_audit_events

    try:
        record_audit_events.delay(events)
    except Exception:
        logger.warning(
            "audit broker unavailable, %d event(s) not queued", len(events),
            exc_info=True, extra={"company_id": company_id},
        )


def resolve_role(company, actor, role=None):
    """Caller-supplied role wins; otherwise the actor's active membership."""
    if role:
        return role
    return EntityMembership.role_for(actor, company)


def assert_role(role, allowed):
    if role not in allowed:
        raise PermissionDenied(
            f"Role '{role or 'none'}' is not allowed to perform this operation."
        )


def _is_retryable(exc):
    cause = exc.__cause__
    if getattr(cause, "pgcode", None) in _RETRYABLE_PGCODES:
        return True
    text = str(exc).lower()
    return "deadlock" in text or "could not serialize" in text or "database is locked" in text


def run_in_ledger_transaction(fn, *, company, actor=None, role=None,
                              roles=POSTING_ROLES, using=DEFAULT_DB_ALIAS):
    """
    Run `fn(tx)` inside one atomic block and return its result.

    Serialization failures retry the whole unit, but only when this is
    the outermost block; nested inside a caller's transaction the error
    propagates.
    """
    role = resolve_role(company, actor, role)
    assert_role(role, roles)

    outermost = not connections[using].in_atomic_block
    attempts = max(1, settings.LEDGER_TRANSACTION_RETRIES) if outermost else 1

    for attempt in range(1, attempts + 1):
        tx = LedgerTransaction(company, actor=actor, role=role, using=using)
        try:
            with transaction.atomic(using=using):
                result = fn(tx)
                tx.schedule_audit_delivery()
            return result
        except ValidationError as exc:
            # model full_clean() failures surface as InvalidArgument
            raise InvalidArgument("; ".join(exc.messages)) from exc
        except OperationalError as exc:
            if attempt >= attempts or not _is_retryable(exc):
                raise
            logger.warning(
                "ledger transaction conflict, retrying",
                extra={"company_id": company.pk, "attempt": attempt},
            )
