"""
Ticketing page views: single page, three sections, backed by Django sessions.

The page shows exactly one of: booking form, payment section, confirmation.
Every POST turns into one workflow intent and redirects back to the section
the workflow is now on. The workflow is rebuilt from the session on each
request and its timers are advanced with the wall clock before anything
else happens, so a finished payment check is picked up by whichever request
comes next (the payment page refreshes itself while loading).

AJAX endpoints return JSON for progress polling, live pricing, live field
normalisation and the copy-to-clipboard buttons.
"""
import logging

from django.conf import settings
from django.contrib import messages
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import intents
from .clipboard import copy_text, payment_targets, report_copy
from .exceptions import BookingValidationError, CopyFailure, MissingBookingError
from .forms import BookingDetailsForm
from .machine import BookingWorkflow, WorkflowStage
from .normalizers import InputField, apply_paste, normalize_input, phone_key_allowed
from .pricing import TicketTier, compute_total, parse_int, parse_quantity, unit_price
from .session import BookingRecordStore, get_workflow_state, set_workflow_state

logger = logging.getLogger(__name__)

SECTION_ANCHORS = {
    WorkflowStage.SELECTING:        'booking',
    WorkflowStage.AWAITING_PAYMENT: 'payment',
    WorkflowStage.CONFIRMING:       'confirmation',
    WorkflowStage.CONFIRMED:        'confirmation',
}

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def wall_clock() -> float:
    return timezone.now().timestamp()


def _load_workflow(request) -> BookingWorkflow:
    """Rebuild the workflow from the session and fire any timers that are due."""
    store = BookingRecordStore(request.session)
    workflow = BookingWorkflow.restore(get_workflow_state(request.session), store, wall_clock)
    workflow.advance()
    return workflow


def _save_workflow(request, workflow: BookingWorkflow) -> None:
    notice = workflow.pop_notice()
    if notice:
        messages.error(request, notice)
    set_workflow_state(request.session, workflow.to_state())


def _redirect_to_section(workflow: BookingWorkflow, anchor: str = None):
    anchor = anchor or SECTION_ANCHORS[workflow.stage]
    return redirect(f"{reverse('tickets:home')}#{anchor}")


def _tier_cards() -> list:
    return [
        {'value': tier.value, 'label': tier.label, 'price': unit_price(tier)}
        for tier in TicketTier
    ]


def _render_page(request, workflow: BookingWorkflow, form=None, status=200):
    snapshot = workflow.snapshot()
    return render(request, 'tickets/index.html', {
        'event_name':    settings.EVENT_NAME,
        'snapshot':      snapshot,
        'form':          form or BookingDetailsForm.from_snapshot(snapshot),
        'tiers':         _tier_cards(),
        'payment':       payment_targets(),
        'refresh_seconds': 1 if snapshot.loading else None,
    }, status=status)


# ─────────────────────────────────────────────────────────────────────────────
# Page
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
def home(request):
    workflow = _load_workflow(request)
    _save_workflow(request, workflow)
    return _render_page(request, workflow)


# ─────────────────────────────────────────────────────────────────────────────
# Selection: tier shortcuts, tier and quantity changes
# ─────────────────────────────────────────────────────────────────────────────

@require_POST
def select_tier_shortcut(request):
    workflow = _load_workflow(request)
    try:
        workflow.dispatch(intents.SelectTierShortcut(tier=request.POST.get('tier', '')))
    except BookingValidationError as exc:
        messages.error(request, exc.errors.get('tier', str(exc)))
    _save_workflow(request, workflow)
    return _redirect_to_section(workflow)


@require_POST
def change_tier(request):
    workflow = _load_workflow(request)
    try:
        workflow.dispatch(intents.ChangeTier(tier=request.POST.get('tier', '')))
    except BookingValidationError as exc:
        messages.error(request, exc.errors.get('tier', str(exc)))
    _save_workflow(request, workflow)
    return _redirect_to_section(workflow)


@require_POST
def change_quantity(request):
    workflow = _load_workflow(request)
    workflow.dispatch(intents.ChangeQuantity(quantity=request.POST.get('quantity', '')))
    _save_workflow(request, workflow)
    return _redirect_to_section(workflow)


# ─────────────────────────────────────────────────────────────────────────────
# Booking details
# ─────────────────────────────────────────────────────────────────────────────

@require_POST
def submit_details(request):
    workflow = _load_workflow(request)
    form = BookingDetailsForm(request.POST)

    if form.is_valid():
        try:
            workflow.dispatch(intents.SubmitDetails(
                full_name=form.cleaned_data['full_name'],
                phone=form.cleaned_data['phone'],
                email=form.cleaned_data['email'],
                tier=form.cleaned_data['tier'],
                quantity=form.cleaned_data['quantity'],
            ))
        except BookingValidationError as exc:
            for field, error in exc.errors.items():
                form.add_error(field, error)
            messages.error(request, str(exc))
        else:
            _save_workflow(request, workflow)
            return _redirect_to_section(workflow)
    else:
        messages.error(request, 'Please correct the highlighted fields.')

    _save_workflow(request, workflow)
    return _render_page(request, workflow, form=form, status=400)


# ─────────────────────────────────────────────────────────────────────────────
# Payment: scan & pay
# ─────────────────────────────────────────────────────────────────────────────

@require_POST
def initiate_payment(request):
    workflow = _load_workflow(request)
    try:
        workflow.dispatch(intents.InitiatePayment())
    except MissingBookingError as exc:
        logger.warning('Payment requested without a stored booking')
        messages.error(request, str(exc))
    _save_workflow(request, workflow)
    return _redirect_to_section(workflow)


# ─────────────────────────────────────────────────────────────────────────────
# New booking
# ─────────────────────────────────────────────────────────────────────────────

@require_POST
def new_booking(request):
    workflow = _load_workflow(request)
    workflow.dispatch(intents.NewBooking())
    _save_workflow(request, workflow)
    return _redirect_to_section(workflow)


# ─────────────────────────────────────────────────────────────────────────────
# AJAX: Workflow state (progress polling)
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
def api_state(request):
    workflow = _load_workflow(request)
    snapshot = workflow.snapshot()
    _save_workflow(request, workflow)
    return JsonResponse(snapshot.as_dict())


# ─────────────────────────────────────────────────────────────────────────────
# AJAX: Live price
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
def api_price(request):
    """
    GET /api/price/?ticket=regular&quantity=3
    Returns the total for a tier and quantity without touching the workflow.
    """
    ticket = request.GET.get('ticket', TicketTier.STUDENT)
    raw_quantity = request.GET.get('quantity', '1')
    try:
        total = compute_total(ticket, raw_quantity)
    except ValueError:
        return JsonResponse({'error': 'Unknown ticket type'}, status=400)

    return JsonResponse({
        'ticket':     str(ticket),
        'unit_price': unit_price(ticket),
        'quantity':   parse_quantity(raw_quantity),
        'total':      total,
    })


# ─────────────────────────────────────────────────────────────────────────────
# AJAX: Live field normalisation
# ─────────────────────────────────────────────────────────────────────────────

@require_http_methods(['GET', 'POST'])
def api_normalize(request):
    """
    GET /api/normalize/?field=phone&event=input&value=...
    GET /api/normalize/?field=fullName&event=paste&value=...&pasted=...&start=0&end=0
    GET /api/normalize/?field=phone&event=keydown&key=5&caret=4&value=+251
    The same parameters may be POSTed as form data (long pasted text).
    """
    params = request.POST if request.method == 'POST' else request.GET
    field = params.get('field', '')
    event = params.get('event', 'input')
    value = params.get('value', '')

    if field not in InputField.values:
        return JsonResponse({'error': 'Unknown field'}, status=400)

    if event == 'input':
        return JsonResponse({'field': field, 'value': normalize_input(field, value)})

    if event == 'paste':
        return JsonResponse({
            'field': field,
            'value': apply_paste(
                field,
                value,
                params.get('pasted', ''),
                start=parse_int(params.get('start', '')),
                end=parse_int(params.get('end', '')),
            ),
        })

    if event == 'keydown':
        # Only the phone field filters keys
        allowed = True
        if field == InputField.PHONE:
            caret = parse_int(params.get('caret', ''))
            allowed = phone_key_allowed(
                params.get('key', ''),
                len(value) if caret is None else caret,
                value,
            )
        return JsonResponse({'field': field, 'allowed': allowed})

    return JsonResponse({'error': 'Unknown event'}, status=400)


# ─────────────────────────────────────────────────────────────────────────────
# AJAX: Copy to clipboard
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
def api_copy_text(request, target):
    workflow = _load_workflow(request)
    try:
        text = copy_text(workflow.snapshot(), target)
    except CopyFailure as exc:
        return JsonResponse({'error': str(exc)}, status=404)
    return JsonResponse({'target': target, 'text': text})


@require_POST
def api_copy_result(request, target):
    succeeded = request.POST.get('ok', '').lower() in ('1', 'true', 'yes')
    try:
        outcome = report_copy(succeeded)
    except CopyFailure as exc:
        logger.info('Clipboard write failed for %s', target)
        return JsonResponse({'ok': False, 'target': target, 'message': str(exc)})
    return JsonResponse({
        'ok': True,
        'target': target,
        'message': outcome.message,
        'toast_seconds': outcome.toast_seconds,
    })


# ─────────────────────────────────────────────────────────────────────────────
# Error pages
# ─────────────────────────────────────────────────────────────────────────────

def error_404(request, exception):
    return render(request, '404.html', status=404)


def error_500(request):
    return render(request, '500.html', status=500)
