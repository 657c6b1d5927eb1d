"""
Typed intents the presentation layer sends into the booking workflow.

One dataclass per user action; BookingWorkflow.dispatch() consumes them.
Values are passed as the page posts them (strings), the workflow coerces.
"""
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SelectTierShortcut:
    """Quick-select button on a ticket card."""
    tier: str


@dataclass(frozen=True)
class ChangeTier:
    tier: str


@dataclass(frozen=True)
class ChangeQuantity:
    quantity: str


@dataclass(frozen=True)
class SubmitDetails:
    full_name: str
    phone: str
    email: str
    tier: str
    quantity: str


@dataclass(frozen=True)
class InitiatePayment:
    """'Scan & Pay' pressed on the payment section."""


@dataclass(frozen=True)
class NewBooking:
    pass


Intent = Union[
    SelectTierShortcut,
    ChangeTier,
    ChangeQuantity,
    SubmitDetails,
    InitiatePayment,
    NewBooking,
]
