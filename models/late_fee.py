"""
models/late_fee.py
------------------
Late fee rules and the result of assessing them against an obligation.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


class FeeType(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class LateFeePolicy:
    """
    How late payments are charged for a property.

    Attributes:
        fee_type: 'fixed' amount or 'percentage' of the outstanding balance.
        fee_amount: The fixed amount, or the percentage (5 means 5%).
        grace_period_days: Days after the due date before a fee applies.
        maximum_fee: Cap for percentage fees (None for no cap).
        is_compounding: Whether a fee can be charged more than once per obligation.
    """
    fee_type: FeeType
    fee_amount: Decimal
    grace_period_days: int = 0
    maximum_fee: Optional[Decimal] = None
    is_compounding: bool = False

    def __post_init__(self):
        object.__setattr__(self, "fee_type", FeeType(self.fee_type))
        object.__setattr__(self, "fee_amount", Decimal(str(self.fee_amount)))
        if self.fee_amount <= 0:
            raise ValueError("fee_amount must be positive")
        if self.grace_period_days < 0:
            raise ValueError("grace_period_days must not be negative")
        if self.maximum_fee is not None:
            object.__setattr__(self, "maximum_fee", Decimal(str(self.maximum_fee)))
            if self.maximum_fee <= 0:
                raise ValueError("maximum_fee must be positive when set")


@dataclass(frozen=True)
class LateFeeAssessment:
    """Outcome of checking one obligation against a late fee policy."""
    amount: Decimal
    days_late: int
    within_grace_period: bool
    outstanding: Decimal
    is_paid: bool = False

    @property
    def applies(self) -> bool:
        return self.amount > 0
