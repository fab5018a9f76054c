import logging

from django.utils import timezone

from ..exceptions import FailedPrecondition, InvalidArgument
from ..models import Company, JournalEntry, JournalLine, ReferenceType
from .accounts import resolve_account
from .audit_helper import log_action
from .periods import assert_period_unlocked
from .unit_of_work import POSTING_ROLES, run_in_ledger_transaction
from .validation import to_date_only, validate_journal_lines

logger = logging.getLogger(__name__)


def as_reference_type(value):
    """Closed enum check; unknown types are rejected."""
    try:
        return ReferenceType(value)
    except ValueError:
        raise InvalidArgument(f"Unsupported referenceType: {value}")


def _assert_opening_balance_allowed(tx):
    # Lock the tenant row so two openings can't both pass
    company = tx.locked(Company).get(pk=tx.company.pk)
    if company.opening_balances_posted:
        raise FailedPrecondition("Opening balances have already been posted.")
    if tx.scoped(JournalEntry).filter(is_posted=True).exists():
        raise FailedPrecondition(
            "Opening balances must be the first ledger activity; "
            "posted journal entries already exist."
        )
    return company


# ----------------------------
# Posting engine
# ----------------------------
def post_in_transaction(tx, reference_type, reference_id, entry_date, lines,
                        description="", metadata=None, side_effects=(),
                        reversal_of=None, reversal_reason=""):
    """
    Write one posted journal entry inside the caller's ledger
    transaction and return it.

    Order: date, period guard, reference type, line validation, account
    resolution, opening-balance precondition, write, side effects.
    `side_effects` are callables `fn(tx, entry)`.
    """
    day = to_date_only(entry_date)
    assert_period_unlocked(tx, day)
    ref_type = as_reference_type(reference_type)
    draft = validate_journal_lines(lines)

    # fail fast on the first bad account
    accounts = [resolve_account(tx, line.account_id) for line in draft.lines]

    company = None
    if ref_type == ReferenceType.OPENING_BALANCE:
        company = _assert_opening_balance_allowed(tx)

    entry = JournalEntry(
        company=tx.company,
        entry_date=day,
        description=description or "",
        reference_type=ref_type,
        reference_id=str(reference_id or ""),
        debit_total=draft.debit_total,
        credit_total=draft.credit_total,
        metadata=metadata or {},
        created_by=tx.actor,
        is_reversal=reversal_of is not None,
        reversal_of=reversal_of,
        reversal_reason=reversal_reason or "",
    )
    entry.save(using=tx.using)

    for line, account in zip(draft.lines, accounts):
        JournalLine(
            company=tx.company,
            entry=entry,
            line_number=line.line_number,
            account=account,
            description=line.description,
            debit_amount=line.debit,
            credit_amount=line.credit,
            entry_date=day,
        ).save(using=tx.using)

    entry.mark_posted(tx.actor, using=tx.using)

    if company is not None:
        company.opening_balances_posted = True
        company.opening_balances_posted_at = timezone.now()
        company.save(using=tx.using, update_fields=[
            "opening_balances_posted", "opening_balances_posted_at"
        ])

    for effect in side_effects:
        effect(tx, entry)

    log_action(tx, action="journal_entry_posted", instance=entry, changes={
        "reference_type": ref_type.value,
        "reference_id": entry.reference_id,
        "debit_total": draft.debit_total,
        "credit_total": draft.credit_total,
    })
    logger.info(
        "posted journal entry %s", entry.pk,
        extra={"company_id": tx.company.pk, "reference_type": ref_type.value,
               "amount": str(draft.debit_total)},
    )
    return entry


def post(company, reference_type, reference_id, entry_date, lines, actor=None,
         role=None, description="", metadata=None):
    """Post a journal entry in its own ledger transaction; returns its id."""
    entry = run_in_ledger_transaction(
        lambda tx: post_in_transaction(
            tx, reference_type, reference_id, entry_date, lines,
            description=description, metadata=metadata,
        ),
        company=company, actor=actor, role=role, roles=POSTING_ROLES,
    )
    return entry.pk


def post_manual_entry(company, entry_date, lines, description="", actor=None, role=None):
    return post(
        company, ReferenceType.MANUAL_ENTRY, "", entry_date, lines,
        actor=actor, role=role, description=description,
    )
