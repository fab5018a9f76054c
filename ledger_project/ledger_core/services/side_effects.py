"""
Side effects that ride along with a posting, inside its transaction:
bank balance mirror, bank transactions, counter documents, inventory.
"""
import logging

from django.db.models import F

from ..exceptions import FailedPrecondition, PermissionDenied
from ..models import (BankAccount, BankTransaction, Direction, InventoryItem,
                      Product, ReferenceType, StockMovement)
from .validation import ZERO

logger = logging.getLogger(__name__)


# ----------------------------
# Bank mirror
# ----------------------------
def _linked_bank_account(tx, payment_account):
    return (
        tx.locked(BankAccount)
        .filter(company=tx.company, ledger_account=payment_account)
        .order_by("pk")
        .first()
    )


def adjust_linked_bank_balance(tx, payment_account, delta):
    """
    Add `delta` to the bank account mirroring `payment_account`.
    No linked bank account is a no-op; returns the bank account or None.
    """
    bank = _linked_bank_account(tx, payment_account)
    if bank is None:
        logger.debug("no bank account linked to %s", payment_account.pk)
        return None
    tx.query(BankAccount).filter(pk=bank.pk).update(
        current_balance=F("current_balance") + delta
    )
    bank.refresh_from_db(using=tx.using, fields=["current_balance"])
    return bank


def record_bank_transaction(tx, *, payment_account, amount, direction, transaction_date,
                            reference_type, reference_id, description="", journal_entry=None):
    bank = _linked_bank_account(tx, payment_account)
    if bank is None:
        return None
    bt = BankTransaction(
        company=tx.company,
        bank_account=bank,
        transaction_date=transaction_date,
        amount=amount,
        direction=direction,
        description=description[:255],
        reference_type=reference_type,
        reference_id=str(reference_id),
        journal_entry=journal_entry,
        is_reconciled=False,
    )
    bt.save(using=tx.using)
    return bt


def move_cash(tx, *, payment_account, amount, direction, transaction_date,
              reference_type, reference_id, description="", journal_entry=None):
    """Bank transaction plus balance delta for one cash movement."""
    delta = amount if direction == Direction.INFLOW else -amount
    adjust_linked_bank_balance(tx, payment_account, delta)
    return record_bank_transaction(
        tx,
        payment_account=payment_account,
        amount=amount,
        direction=direction,
        transaction_date=transaction_date,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        journal_entry=journal_entry,
    )


# ----------------------------
# Counter documents
# ----------------------------
def update_counters(tx, model, pk, increments):
    """
    Apply {field: delta} to one counter row (Customer, Vendor).
    A missing or foreign row is a no-op; returns whether it applied.
    """
    if pk is None:
        return False
    row = tx.locked(model).filter(pk=pk).only("pk", "company_id").first()
    if row is None or not tx.owns(row):
        logger.debug("counter %s %s skipped", model.__name__, pk)
        return False
    tx.query(model).filter(pk=pk).update(
        **{field: F(field) + delta for field, delta in increments.items()}
    )
    return True


# ----------------------------
# Inventory
# ----------------------------
def _resolve_product(tx, line):
    if line.product_id:
        product = tx.query(Product).filter(pk=line.product_id).first()
        if product and not tx.owns(product):
            raise PermissionDenied(f"Product {line.product_id} is not in this organization.")
        return product
    description = (line.description or "").strip()
    if not description:
        return None
    return tx.scoped(Product).filter(name__iexact=description).order_by("pk").first()


def issue_inventory_for_invoice(tx, invoice, movement_date):
    """
    Reduce stock for every product line of the invoice and record an
    issue movement. Lines without a matching product are services.
    """
    movements = []
    for line in invoice.lines.all():
        if line.quantity is None or line.quantity <= ZERO:
            continue
        product = _resolve_product(tx, line)
        if product is None:
            continue
        item = tx.locked(InventoryItem).filter(company=tx.company, product=product).first()
        if item is None:
            raise FailedPrecondition(f"Inventory item not found for product {product.pk}.")
        tx.query(InventoryItem).filter(pk=item.pk).update(
            quantity_on_hand=F("quantity_on_hand") - line.quantity
        )
        mv = StockMovement(
            company=tx.company,
            item=item,
            movement_date=movement_date,
            direction=Direction.OUTFLOW,
            movement_type="issue",
            quantity=line.quantity,
            reference_type=ReferenceType.INVOICE,
            reference_id=str(invoice.pk),
        )
        mv.save(using=tx.using)
        movements.append(mv)
    return movements


def restock_inventory_for_invoice(tx, invoice, movement_date):
    """Inverse of issue_inventory_for_invoice, driven by its movements."""
    issued = tx.scoped(StockMovement).filter(
        reference_type=ReferenceType.INVOICE,
        reference_id=str(invoice.pk),
        movement_type="issue",
    )
    returned = []
    for mv in issued:
        tx.query(InventoryItem).filter(pk=mv.item_id).update(
            quantity_on_hand=F("quantity_on_hand") + mv.quantity
        )
        back = StockMovement(
            company=tx.company,
            item_id=mv.item_id,
            movement_date=movement_date,
            direction=Direction.INFLOW,
            movement_type="return",
            quantity=mv.quantity,
            reference_type="InvoiceReversal",
            reference_id=str(invoice.pk),
        )
        back.save(using=tx.using)
        returned.append(back)
    return returned
