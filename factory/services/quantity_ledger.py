"""
Quantity Ledger.

Owns the conservation arithmetic for a batch's quantity fields. These
functions are the only code allowed to write usable_quantity,
defective_quantity and scrapped_quantity.

Invariant (checked after every mutation):
    usable + defective + scrapped <= total, every field >= 0

Mutation points:
1. CUTTING approval        usable = total
   Entering QUALITY_CHECK  usable = 0 (units await classification)
2. Inspection recording    defective += found, usable += inspected - found
                           (capacity: usable + defective + scrapped + inspected <= total)
3. Rework approval         usable += cured, scrapped += scrapped,
                           defective -= reworked
"""
import logging

from factory.core.exceptions import ValidationFailed


logger = logging.getLogger(__name__)


class LedgerInconsistency(Exception):
    """Raised when a mutation would break quantity conservation."""
    pass


# =============================================================================
# QUERIES
# =============================================================================

def already_accounted(batch) -> int:
    """Units already classified (usable + defective + scrapped)."""
    return batch.usable_quantity + batch.defective_quantity + batch.scrapped_quantity


def remaining_capacity(batch) -> int:
    """Units of the batch total not yet accounted for."""
    return max(0, batch.total_quantity - already_accounted(batch))


def assert_conserved(batch) -> None:
    """Raise LedgerInconsistency if the batch ledger is out of balance."""
    fields = {
        "usable": batch.usable_quantity,
        "defective": batch.defective_quantity,
        "scrapped": batch.scrapped_quantity,
    }
    negative = {name: value for name, value in fields.items() if value < 0}
    if negative:
        raise LedgerInconsistency(f"Negative ledger fields on batch {batch.batch_number}: {negative}")

    accounted = sum(fields.values())
    if accounted > batch.total_quantity:
        raise LedgerInconsistency(
            f"Quantity inconsistency on batch {batch.batch_number}: "
            f"usable({batch.usable_quantity}) + defective({batch.defective_quantity}) + "
            f"scrapped({batch.scrapped_quantity}) > total({batch.total_quantity})"
        )


# =============================================================================
# MUTATIONS
# =============================================================================

def apply_cutting_approval(batch) -> None:
    """Raw material issued at intake: the whole batch is usable."""
    batch.usable_quantity = batch.total_quantity
    assert_conserved(batch)


def open_inspection(batch) -> None:
    """
    Hand the batch over to quality control.

    Everything produced upstream is uninspected until a quality session
    classifies it, so the usable pool is emptied and refilled by
    apply_inspection.
    """
    batch.usable_quantity = 0
    assert_conserved(batch)


def check_inspection_capacity(batch, quantity_in: int) -> None:
    """
    Reject an inspection session that would classify more units than the
    batch has left to account for.
    """
    remaining = remaining_capacity(batch)
    if already_accounted(batch) + quantity_in > batch.total_quantity:
        raise ValidationFailed(
            f"Cannot inspect {quantity_in} units. Only {remaining} units remain uninspected.",
            {
                "total_quantity": batch.total_quantity,
                "already_inspected": already_accounted(batch),
                "remaining": remaining,
                "received": quantity_in,
            },
        )


def apply_inspection(batch, quantity_in: int, defective_quantity: int) -> None:
    """
    Record one inspection session against the ledger.

    Raises:
        ValidationFailed: if the split is invalid or exceeds remaining capacity
    """
    if defective_quantity < 0 or defective_quantity > quantity_in:
        raise ValidationFailed(
            "Defective quantity cannot exceed inspected quantity",
            {"quantity_in": quantity_in, "defective_quantity": defective_quantity},
        )
    check_inspection_capacity(batch, quantity_in)

    batch.defective_quantity += defective_quantity
    batch.usable_quantity += quantity_in - defective_quantity
    assert_conserved(batch)


def apply_rework_approval(batch, quantity: int, cured_quantity: int, scrapped_quantity: int) -> None:
    """
    Commit an approved rework session.

    Cured units return to the usable pool, the rest are scrapped, and the
    reworked units leave the defective pool.
    """
    if cured_quantity + scrapped_quantity != quantity:
        raise LedgerInconsistency(
            f"Rework split {cured_quantity} + {scrapped_quantity} does not equal {quantity}"
        )
    if quantity > batch.defective_quantity:
        raise LedgerInconsistency(
            f"Cannot rework {quantity} units on batch {batch.batch_number}: "
            f"only {batch.defective_quantity} defective"
        )

    batch.defective_quantity -= quantity
    batch.usable_quantity += cured_quantity
    batch.scrapped_quantity += scrapped_quantity
    assert_conserved(batch)
    logger.debug(
        f"Rework applied to {batch.batch_number}: +{cured_quantity} usable, +{scrapped_quantity} scrapped"
    )
