"""
Journal line validation.

Pure functions: nothing here touches the database, so the builder can
run before any read or write of a posting.
"""
import datetime
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..exceptions import InvalidArgument, UnbalancedJournalError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Balance tolerance applied to cent-rounded totals
JOURNAL_EPSILON = Decimal("0.001")


@dataclass(frozen=True)
class JournalLineInput:
    account_id: object
    debit: object = ZERO
    credit: object = ZERO
    description: str = ""


@dataclass(frozen=True)
class NormalizedLine:
    line_number: int
    account_id: str
    debit: Decimal
    credit: Decimal
    description: str


@dataclass(frozen=True)
class JournalDraft:
    lines: tuple
    debit_total: Decimal
    credit_total: Decimal


def normalize_money(value, field="amount"):
    """Decimal rounded half-up to cents. Blank counts as zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a number.")
    try:
        # str() first so floats round from their shortest repr
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgument(f"{field} must be a number.")
    if not amount.is_finite():
        raise InvalidArgument(f"{field} must be a finite number.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def assert_positive_amount(value, field="amount"):
    amount = normalize_money(value, field)
    if amount <= 0:
        raise InvalidArgument(f"{field} must be greater than zero.")
    return amount


def to_date_only(value=None):
    """date / datetime / ISO string → date. None means today."""
    if value is None or value == "":
        return timezone.localdate()
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = parse_date(text[:10]) if len(text) >= 10 else None
            if parsed is None:
                stamp = parse_datetime(text)
                parsed = stamp.date() if stamp else None
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise InvalidArgument("Invalid date value.")


def _field(line, *names):
    for name in names:
        if isinstance(line, dict):
            if line.get(name) not in (None, ""):
                return line[name]
        elif getattr(line, name, None) not in (None, ""):
            return getattr(line, name)
    return None


def normalize_journal_line(line, index):
    number = index + 1
    if line is None:
        raise InvalidArgument(f"Line {number} is missing.")

    account = _field(line, "account_id", "account")
    account_id = str(getattr(account, "pk", account) or "").strip()
    if not account_id:
        raise InvalidArgument(f"Line {number} is missing accountId.")

    debit = normalize_money(_field(line, "debit", "debit_amount"), f"Line {number} debit")
    credit = normalize_money(_field(line, "credit", "credit_amount"), f"Line {number} credit")

    if debit < 0 or credit < 0:
        raise InvalidArgument(f"Line {number} cannot be negative.")
    if (debit > 0) == (credit > 0):
        raise InvalidArgument(
            f"Line {number} must contain exactly one side (debit or credit)."
        )

    return NormalizedLine(
        line_number=number,
        account_id=account_id,
        debit=debit,
        credit=credit,
        description=str(_field(line, "description") or ""),
    )


def validate_journal_lines(raw_lines):
    """
    Normalize proposed lines and check they balance.
    Rules in order: ≥2 lines, account present, cents rounding,
    non-negative, one side only, debits == credits.
    """
    if raw_lines is not None and not isinstance(raw_lines, (list, tuple)):
        raise InvalidArgument("Journal lines must be a list.")
    if not raw_lines or len(raw_lines) < 2:
        raise InvalidArgument("Journal entry requires at least 2 lines.")

    lines = tuple(normalize_journal_line(line, i) for i, line in enumerate(raw_lines))
    debit_total = sum((line.debit for line in lines), ZERO)
    credit_total = sum((line.credit for line in lines), ZERO)

    if abs(debit_total - credit_total) > JOURNAL_EPSILON:
        raise UnbalancedJournalError(debit_total, credit_total)

    return JournalDraft(lines=lines, debit_total=debit_total, credit_total=credit_total)


def as_pk(value):
    """Integer primary key, or -1 so a lookup with it finds nothing."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return -1
