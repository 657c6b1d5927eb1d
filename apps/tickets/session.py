"""
Session helpers for the single-page booking flow.

Two slots live in the session (signed-cookie backend, so both are stored in
the buyer's browser and survive a reload):

request.session['currentBooking'] holds the pending booking, as JSON text:
{
    "fullName": "...",
    "phone":    "+251...",
    "email":    "...",
    "ticket":   "regular | vip | vvip",
    "quantity": 1
}

request.session['bookingWorkflow'] holds the machine's own state (stage, form
values, payment start time), see BookingWorkflow.to_state().

Use BookingRecordStore and the workflow helpers below instead of touching
the session keys directly.
"""
import json
import logging
from dataclasses import dataclass

from .pricing import TicketTier, coerce_tier

logger = logging.getLogger(__name__)

SESSION_KEY = 'currentBooking'
WORKFLOW_SESSION_KEY = 'bookingWorkflow'


@dataclass(frozen=True)
class BookingDraft:
    full_name: str
    phone: str
    email: str
    tier: TicketTier
    quantity: int

    def __post_init__(self):
        object.__setattr__(self, 'tier', coerce_tier(self.tier))
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError(f"Booking quantity must be a positive integer, got {self.quantity!r}.")

    def to_record(self) -> dict:
        return {
            'fullName': self.full_name,
            'phone':    self.phone,
            'email':    self.email,
            'ticket':   self.tier.value,
            'quantity': self.quantity,
        }

    @classmethod
    def from_record(cls, record: dict):
        """Raises ValueError / KeyError / TypeError when the record is not a booking."""
        for key in ('fullName', 'phone', 'email'):
            if not isinstance(record[key], str):
                raise TypeError(f"'{key}' must be a string.")
        return cls(
            full_name=record['fullName'],
            phone=record['phone'],
            email=record['email'],
            tier=record['ticket'],
            quantity=record['quantity'],
        )


class BookingRecordStore:
    """
    Single-slot durable store for the pending booking.
    Backed by any mutable mapping, request.session in the web flow.
    """

    def __init__(self, storage, key: str = SESSION_KEY):
        self._storage = storage
        self._key = key

    def save(self, draft: BookingDraft) -> None:
        """Persist `draft` as the only record, replacing any previous one."""
        self._storage[self._key] = json.dumps(draft.to_record())

    def load(self):
        """Return the stored BookingDraft, or None when absent or malformed."""
        raw = self._storage.get(self._key)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
            if not isinstance(record, dict):
                raise TypeError('booking record is not an object')
            return BookingDraft.from_record(record)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning('Ignoring malformed booking record in %r: %s', self._key, exc)
            return None

    def clear(self) -> None:
        self._storage.pop(self._key, None)

    def has_record(self) -> bool:
        return self.load() is not None


def get_workflow_state(session) -> dict:
    state = session.get(WORKFLOW_SESSION_KEY, {})
    return state if isinstance(state, dict) else {}


def set_workflow_state(session, state: dict) -> None:
    session[WORKFLOW_SESSION_KEY] = state
