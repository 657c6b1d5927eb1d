"""
Copy-to-clipboard support for the payment and confirmation sections.

The page's copy buttons carry a `data-target`; the browser asks for the text
behind that target, writes it to the clipboard and reports back whether the
write worked so the page can show the toast or the manual fallback.
"""
from dataclasses import dataclass

from django.conf import settings

from .exceptions import CopyFailure

COPIED_MESSAGE = '✅ Copied to clipboard'


@dataclass(frozen=True)
class CopyOutcome:
    message: str
    toast_seconds: float


def payment_targets() -> dict:
    return {
        'accountName':    settings.PAYMENT_ACCOUNT_NAME,
        'accountNumber':  settings.PAYMENT_ACCOUNT_NUMBER,
        'telebirrNumber': settings.PAYMENT_TELEBIRR_NUMBER,
    }


def confirmation_targets(confirmation) -> dict:
    if confirmation is None:
        return {}
    summary = '\n'.join([
        f"Name: {confirmation.full_name}",
        f"Phone: {confirmation.phone}",
        f"Email: {confirmation.email}",
        f"Ticket: {confirmation.ticket_label}",
        f"Quantity: {confirmation.quantity}",
        f"Total: {confirmation.total} ETB",
    ])
    return {
        'confName':       confirmation.full_name,
        'confPhone':      confirmation.phone,
        'confEmail':      confirmation.email,
        'confTicket':     confirmation.ticket_label,
        'confQty':        str(confirmation.quantity),
        'confTotal':      str(confirmation.total),
        'bookingSummary': summary,
    }


def copy_text(snapshot, target: str) -> str:
    """Text behind a copy button. Raises CopyFailure for unknown or empty targets."""
    targets = {**payment_targets(), **confirmation_targets(snapshot.confirmation)}
    text = targets.get(target, '')
    if not text:
        raise CopyFailure()
    return text


def report_copy(succeeded: bool) -> CopyOutcome:
    """Toast for a successful write. Raises CopyFailure when the platform refused it."""
    if not succeeded:
        raise CopyFailure()
    return CopyOutcome(message=COPIED_MESSAGE, toast_seconds=settings.COPY_TOAST_SECONDS)
