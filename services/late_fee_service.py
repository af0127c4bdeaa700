"""
services/late_fee_service.py
----------------------------
Late fee calculation for overdue obligations.
"""

from decimal import ROUND_HALF_UP, Decimal

from models.late_fee import FeeType, LateFeeAssessment, LateFeePolicy
from models.obligation import PaymentObligation
from utils.dates import to_local_date
from utils.logger import get_logger

logger = get_logger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


def calculate_late_fee(
    policy: LateFeePolicy,
    obligation: PaymentObligation,
    amount_paid,
    as_of,
    fees_already_applied: int = 0,
) -> LateFeeAssessment:
    """
    Work out the late fee owed on an obligation.

    Args:
        policy: The property's late fee rules.
        obligation: The obligation being checked.
        amount_paid: What has been paid towards it so far.
        as_of: Date (or instant) to assess at.
        fees_already_applied: Fees already charged on this obligation;
            a non-compounding policy charges nothing once this is > 0.

    Returns:
        A LateFeeAssessment. `amount` is 0 when no fee applies.
    """
    ref = to_local_date(as_of)
    days_late = max(0, (ref - obligation.due_date).days)
    outstanding = obligation.amount - Decimal(str(amount_paid))

    if days_late <= policy.grace_period_days:
        return LateFeeAssessment(
            amount=_ZERO,
            days_late=days_late,
            within_grace_period=True,
            outstanding=max(outstanding, _ZERO),
        )

    if outstanding <= 0:
        return LateFeeAssessment(
            amount=_ZERO,
            days_late=days_late,
            within_grace_period=False,
            outstanding=_ZERO,
            is_paid=True,
        )

    if fees_already_applied > 0 and not policy.is_compounding:
        logger.debug(
            f"Late fee already applied for schedule #{obligation.schedule_id} "
            f"due {obligation.due_date}; policy does not compound"
        )
        fee = _ZERO
    elif policy.fee_type == FeeType.PERCENTAGE:
        fee = outstanding * policy.fee_amount / Decimal(100)
        if policy.maximum_fee is not None and fee > policy.maximum_fee:
            fee = policy.maximum_fee
    else:
        fee = policy.fee_amount

    return LateFeeAssessment(
        amount=fee.quantize(_CENT, rounding=ROUND_HALF_UP),
        days_late=days_late,
        within_grace_period=False,
        outstanding=outstanding,
    )
