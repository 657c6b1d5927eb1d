"""
Booking workflow: the state machine behind the ticketing page.

Stages:
  SELECTING         → booking form visible; tier/quantity priced live
  AWAITING_PAYMENT  → payment section visible; 'Scan & Pay' starts the check
  CONFIRMING        → payment check finished, summary being built from the record
  CONFIRMED         → confirmation section visible; 'New Booking' restarts

  SELECTING --submit_details--> AWAITING_PAYMENT
  AWAITING_PAYMENT --initiate_payment, after PAYMENT_SIMULATION_SECONDS--> CONFIRMING --> CONFIRMED
  CONFIRMING / CONFIRMED --new_booking--> SELECTING

The pending booking is written to the BookingRecordStore on submit and
cleared on new_booking, so the store holds a record exactly while the
machine is past SELECTING. Intents that do not apply to the current stage
are logged and ignored.

No request awareness: the machine is rebuilt from to_state() on every
request by the views, and timers only fire from advance().
"""
import logging
from dataclasses import asdict, dataclass, field, replace

from django.conf import settings
from django.db import models

from . import intents
from .exceptions import BookingValidationError, MissingBookingError
from .normalizers import PHONE_PREFIX
from .pricing import DEFAULT_TIER, TicketTier, coerce_tier, compute_total, parse_int, tier_label
from .scheduler import CancellationToken, Scheduler
from .session import BookingDraft

logger = logging.getLogger(__name__)

PROGRESS_MAX = 100


class WorkflowStage(models.TextChoices):
    SELECTING        = 'SELECTING',        'Selecting'
    AWAITING_PAYMENT = 'AWAITING_PAYMENT', 'Awaiting Payment'
    CONFIRMING       = 'CONFIRMING',       'Confirming'
    CONFIRMED        = 'CONFIRMED',        'Confirmed'


CONFIRMATION_STAGES = (WorkflowStage.CONFIRMING, WorkflowStage.CONFIRMED)


@dataclass(frozen=True)
class FormValues:
    """What the booking form shows. Quantity is kept as typed."""
    full_name: str = ''
    phone: str = PHONE_PREFIX
    email: str = ''
    tier: TicketTier = DEFAULT_TIER
    quantity: str = '1'


@dataclass(frozen=True)
class Confirmation:
    full_name: str
    phone: str
    email: str
    tier: TicketTier
    ticket_label: str
    quantity: int
    total: int

    @classmethod
    def from_draft(cls, draft: BookingDraft):
        # Priced from the stored record, never from what the form displays
        return cls(
            full_name=draft.full_name,
            phone=draft.phone,
            email=draft.email,
            tier=draft.tier,
            ticket_label=tier_label(draft.tier),
            quantity=draft.quantity,
            total=compute_total(draft.tier, draft.quantity),
        )


@dataclass(frozen=True)
class Snapshot:
    stage: WorkflowStage
    total: int
    form: FormValues
    progress: int = 0
    loading: bool = False
    confirmation: Confirmation = None
    notice: str = ''
    amount_due: int = None

    @property
    def show_booking_form(self) -> bool:
        return self.stage == WorkflowStage.SELECTING

    @property
    def show_payment(self) -> bool:
        return self.stage == WorkflowStage.AWAITING_PAYMENT

    @property
    def show_confirmation(self) -> bool:
        return self.stage in CONFIRMATION_STAGES

    def as_dict(self) -> dict:
        data = asdict(self)
        data['stage'] = self.stage.value
        data['form']['tier'] = self.form.tier.value
        if self.confirmation:
            data['confirmation']['tier'] = self.confirmation.tier.value
        data['sections'] = {
            'booking': self.show_booking_form,
            'payment': self.show_payment,
            'confirmation': self.show_confirmation,
        }
        return data


@dataclass
class PaymentSimulation:
    """
    One running scan & pay check: a progress tick plus a completion timer.
    `token` cancels both together.
    """
    started_at: float
    progress: int = 0
    token: CancellationToken = field(default_factory=CancellationToken)

    def tick(self) -> None:
        self.progress = min(PROGRESS_MAX, self.progress + 1)

    def cancel(self) -> None:
        self.token.cancel()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled


class BookingWorkflow:

    def __init__(self, store, clock, *, duration: float = None, interval: float = None):
        self._store = store
        self._scheduler = Scheduler(clock)
        self._duration = duration if duration is not None else settings.PAYMENT_SIMULATION_SECONDS
        self._interval = interval if interval is not None else settings.PAYMENT_PROGRESS_INTERVAL_SECONDS
        self._stage = WorkflowStage.SELECTING
        self._form = FormValues()
        self._confirmation = None
        self._simulation = None
        self._notice = ''
        self._handlers = {
            intents.SelectTierShortcut: lambda i: self.select_tier_shortcut(i.tier),
            intents.ChangeTier:         lambda i: self.change_tier(i.tier),
            intents.ChangeQuantity:     lambda i: self.change_quantity(i.quantity),
            intents.SubmitDetails:      lambda i: self.submit_details(
                i.full_name, i.phone, i.email, i.tier, i.quantity,
            ),
            intents.InitiatePayment:    lambda i: self.initiate_payment(),
            intents.NewBooking:         lambda i: self.new_booking(),
        }

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def stage(self) -> WorkflowStage:
        return self._stage

    @property
    def form(self) -> FormValues:
        return self._form

    @property
    def simulation(self):
        return self._simulation

    @property
    def total(self) -> int:
        return compute_total(self._form.tier, self._form.quantity)

    def snapshot(self) -> Snapshot:
        sim = self._simulation
        return Snapshot(
            stage=self._stage,
            total=self.total,
            form=self._form,
            progress=sim.progress if sim else 0,
            loading=sim is not None and not sim.cancelled,
            confirmation=self._confirmation,
            notice=self._notice,
            amount_due=self._amount_due(),
        )

    def _amount_due(self):
        """What the buyer owes: always priced from the stored record."""
        if self._stage == WorkflowStage.SELECTING:
            return None
        if self._confirmation is not None:
            return self._confirmation.total
        draft = self._store.load()
        return compute_total(draft.tier, draft.quantity) if draft else None

    def pop_notice(self) -> str:
        notice, self._notice = self._notice, ''
        return notice

    def to_state(self) -> dict:
        return {
            'stage': self._stage.value,
            'form': {
                'full_name': self._form.full_name,
                'phone': self._form.phone,
                'email': self._form.email,
                'tier': self._form.tier.value,
                'quantity': self._form.quantity,
            },
            'payment_started_at': self._simulation.started_at if self._simulation else None,
            'confirmation': (
                {**asdict(self._confirmation), 'tier': self._confirmation.tier.value}
                if self._confirmation else None
            ),
            'notice': self._notice,
        }

    @classmethod
    def restore(cls, state: dict, store, clock, **kwargs):
        """
        Rebuild a machine from to_state() output. Unknown or damaged state
        falls back to a fresh SELECTING machine. A payment check that was
        running is rescheduled from its original start; call advance() to
        catch up.
        """
        machine = cls(store, clock, **kwargs)
        state = state or {}
        try:
            machine._stage = WorkflowStage(state.get('stage', WorkflowStage.SELECTING))
            form = state.get('form') or {}
            machine._form = FormValues(
                full_name=str(form.get('full_name', '')),
                phone=str(form.get('phone', PHONE_PREFIX)),
                email=str(form.get('email', '')),
                tier=coerce_tier(form.get('tier', DEFAULT_TIER)),
                quantity=str(form.get('quantity', '1')),
            )
            confirmation = state.get('confirmation')
            if confirmation:
                machine._confirmation = Confirmation(**{
                    **confirmation, 'tier': coerce_tier(confirmation['tier']),
                })
            machine._notice = str(state.get('notice') or '')
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning('Discarding unreadable workflow state: %s', exc)
            return cls(store, clock, **kwargs)._settle()

        started_at = state.get('payment_started_at')
        if machine._stage == WorkflowStage.AWAITING_PAYMENT and isinstance(started_at, (int, float)):
            machine._start_simulation(float(started_at))
        return machine._settle()

    def _settle(self):
        """Re-establish the record/stage invariant after a restore."""
        if self._stage == WorkflowStage.SELECTING:
            self._store.clear()
        elif self._stage in CONFIRMATION_STAGES and self._confirmation is None:
            draft = self._store.load()
            if draft is None:
                self._stage = WorkflowStage.SELECTING
            else:
                self._stage = WorkflowStage.CONFIRMED
                self._confirmation = Confirmation.from_draft(draft)
        return self

    # ── Dispatch ─────────────────────────────────────────────────────────────

    def dispatch(self, intent) -> Snapshot:
        """Apply one intent and return the resulting snapshot."""
        try:
            handler = self._handlers[type(intent)]
        except KeyError:
            raise TypeError(f"Unknown booking intent: {intent!r}") from None
        handler(intent)
        return self.snapshot()

    def advance(self, now: float = None) -> Snapshot:
        """Fire due timers (progress ticks, payment completion)."""
        self._scheduler.run_due(now)
        return self.snapshot()

    def _ignore(self, action: str) -> None:
        logger.warning('Ignoring %s while %s', action, self._stage.label)

    # ── Selection ────────────────────────────────────────────────────────────

    def change_tier(self, tier) -> None:
        try:
            tier = coerce_tier(tier)
        except ValueError:
            raise BookingValidationError({'tier': 'Please choose a valid ticket type.'}) from None
        self._form = replace(self._form, tier=tier)

    def select_tier_shortcut(self, tier) -> None:
        self.change_tier(tier)

    def change_quantity(self, quantity) -> None:
        self._form = replace(self._form, quantity='' if quantity is None else str(quantity).strip())

    # ── Details ──────────────────────────────────────────────────────────────

    def submit_details(self, full_name, phone, email, tier, quantity) -> None:
        if self._stage != WorkflowStage.SELECTING:
            self._ignore('submitted details')
            return

        full_name = (full_name or '').strip()
        phone = (phone or '').strip()
        email = (email or '').strip()
        qty = parse_int(quantity)

        errors = {}
        if not full_name:
            errors['full_name'] = 'Please enter your full name.'
        if not phone or phone == PHONE_PREFIX:
            errors['phone'] = 'Please enter your phone number.'
        if not email:
            errors['email'] = 'Please enter your email address.'
        try:
            tier = coerce_tier(tier)
        except ValueError:
            errors['tier'] = 'Please choose a ticket type.'
        if qty is None or qty < 1:
            errors['quantity'] = 'Please choose at least 1 ticket.'
        if errors:
            raise BookingValidationError(errors)

        draft = BookingDraft(full_name=full_name, phone=phone, email=email, tier=tier, quantity=qty)
        self._store.save(draft)
        self._form = FormValues(full_name, phone, email, tier, str(qty))
        self._stage = WorkflowStage.AWAITING_PAYMENT
        logger.info('Booking details accepted: %s x%d', tier.value, qty)

    # ── Payment ──────────────────────────────────────────────────────────────

    def initiate_payment(self) -> None:
        if self._stage != WorkflowStage.AWAITING_PAYMENT:
            self._ignore('payment')
            return
        if not self._store.has_record():
            raise MissingBookingError()
        self._notice = ''
        self._start_simulation(self._scheduler.now())
        logger.info('Payment check started (%.1fs)', self._duration)

    def _start_simulation(self, started_at: float) -> None:
        if self._simulation is not None:
            self._simulation.cancel()
        sim = PaymentSimulation(started_at=started_at)
        sim.token.add(self._scheduler.call_every(self._interval, sim.tick, start=started_at))
        sim.token.add(self._scheduler.call_later(
            self._duration, lambda: self._complete_payment(sim), start=started_at,
        ))
        self._simulation = sim

    def _complete_payment(self, sim: PaymentSimulation) -> None:
        sim.cancel()
        self._simulation = None
        self._stage = WorkflowStage.CONFIRMING

        draft = self._store.load()
        if draft is None:
            # Record vanished while the check ran; back to the payment step
            self._stage = WorkflowStage.AWAITING_PAYMENT
            self._notice = MissingBookingError.message
            logger.warning('Payment check finished but no booking record was found')
            return

        self._confirmation = Confirmation.from_draft(draft)
        self._stage = WorkflowStage.CONFIRMED
        logger.info('Booking confirmed: %s x%d = %d', draft.tier.value, draft.quantity,
                    self._confirmation.total)

    # ── Restart ──────────────────────────────────────────────────────────────

    def new_booking(self) -> None:
        if self._stage not in CONFIRMATION_STAGES:
            self._ignore('new booking')
            return
        if self._simulation is not None:
            self._simulation.cancel()
            self._simulation = None
        self._store.clear()
        self._form = FormValues()
        self._confirmation = None
        self._notice = ''
        self._stage = WorkflowStage.SELECTING
        logger.info('Booking reset for a new purchase')
