"""Integration tests for the ticketing page.

These drive the page through the Django test client; the booking record
lives in the signed session cookie between requests.
Run with: pytest tests/test_views.py -v
"""

import json

import pytest
from django.conf import settings
from django.contrib.sessions.backends.signed_cookies import SessionStore
from django.urls import reverse

from apps.tickets import views
from apps.tickets.machine import WorkflowStage
from apps.tickets.session import SESSION_KEY


@pytest.fixture(autouse=True)
def wall_clock(monkeypatch, clock):
    monkeypatch.setattr(views, 'wall_clock', clock)
    return clock


@pytest.fixture
def details() -> dict:
    return {
        'full_name': 'Abebe Kebede',
        'phone': '+251911223344',
        'email': 'abebe@example.com',
        'tier': 'regular',
        'quantity': '3',
    }


def stored_record(client):
    raw = client.session.get(SESSION_KEY)
    return json.loads(raw) if raw else None


def page(client):
    return client.get(reverse('tickets:home'))


def flashed(response):
    return [str(m) for m in response.context['messages']]


class TestPage:
    """Tests for GET /"""

    def test_shows_booking_form_with_default_price(self, client):
        response = page(client)
        assert response.status_code == 200
        snapshot = response.context['snapshot']
        assert snapshot.stage == WorkflowStage.SELECTING
        assert snapshot.total == 150
        assert b'id="bookingForm"' in response.content

    def test_lists_every_tier(self, client):
        tiers = page(client).context['tiers']
        assert [t['price'] for t in tiers] == [150, 300, 500]

    def test_booking_form_wires_live_price_and_field_rules(self, client):
        """The form carries the endpoints its change, input, paste and keydown handlers call."""
        html = page(client).content.decode()
        assert f'data-price-url="{reverse("tickets:api_price")}"' in html
        assert f'data-normalize-url="{reverse("tickets:api_normalize")}"' in html
        for hook in (
            "ticketSelect?.addEventListener('change', updateTotalPrice)",
            "quantityInput?.addEventListener('input', updateTotalPrice)",
            "input.addEventListener('paste'",
            "phoneInput?.addEventListener('keydown'",
        ):
            assert hook in html

    def test_field_scripts_only_with_booking_form(self, client, details):
        client.post(reverse('tickets:submit_details'), details)
        assert b'updateTotalPrice' not in page(client).content


class TestSelection:
    """Tests for tier and quantity intents."""

    def test_shortcut_jumps_to_booking_form(self, client):
        response = client.post(reverse('tickets:tier_shortcut'), {'tier': 'vvip'})
        assert response.status_code == 302
        assert response.url.endswith('#booking')
        assert page(client).context['snapshot'].total == 500

    def test_quantity_reprices(self, client):
        client.post(reverse('tickets:change_tier'), {'tier': 'regular'})
        client.post(reverse('tickets:change_quantity'), {'quantity': '3'})
        assert page(client).context['snapshot'].total == 450

    def test_shortcut_after_submit_stays_on_payment(self, client, details):
        """Once details are in, a tier card click lands on the visible section."""
        client.post(reverse('tickets:submit_details'), details)
        response = client.post(reverse('tickets:tier_shortcut'), {'tier': 'vvip'})
        assert response.url.endswith('#payment')

    def test_unknown_tier_flashes_error(self, client):
        response = client.post(reverse('tickets:change_tier'), {'tier': 'gold'}, follow=True)
        assert 'Please choose a valid ticket type.' in flashed(response)
        assert response.context['snapshot'].total == 150


class TestSubmitDetails:
    """Tests for POST /details/"""

    def test_valid_details_store_record(self, client, details):
        response = client.post(reverse('tickets:submit_details'), details)
        assert response.status_code == 302
        assert response.url.endswith('#payment')
        assert stored_record(client) == {
            'fullName': 'Abebe Kebede',
            'phone': '+251911223344',
            'email': 'abebe@example.com',
            'ticket': 'regular',
            'quantity': 3,
        }
        assert page(client).context['snapshot'].show_payment

    def test_inputs_are_normalized_before_storing(self, client, details):
        client.post(reverse('tickets:submit_details'), {
            **details, 'full_name': 'Abebe 2 Kebede', 'phone': '+251 911 22 33 44 55',
        })
        record = stored_record(client)
        assert record['fullName'] == 'Abebe  Kebede'
        assert record['phone'] == '+251911223344'

    @pytest.mark.parametrize('field', ['full_name', 'phone', 'email'])
    def test_missing_field_rerenders_with_error(self, client, details, field):
        response = client.post(reverse('tickets:submit_details'), {**details, field: ''})
        assert response.status_code == 400
        assert response.context['form'].errors[field]
        assert '⚠️ Please fill all required fields.' in flashed(response)
        assert stored_record(client) is None
        assert response.context['snapshot'].stage == WorkflowStage.SELECTING

    def test_zero_quantity_rejected(self, client, details):
        response = client.post(reverse('tickets:submit_details'), {**details, 'quantity': '0'})
        assert response.status_code == 400
        assert stored_record(client) is None

    def test_invalid_email_rejected_by_form(self, client, details):
        response = client.post(reverse('tickets:submit_details'), {**details, 'email': 'not-an-email'})
        assert response.status_code == 400
        assert response.context['form'].errors['email']
        assert stored_record(client) is None


class TestPaymentFlow:
    """Tests for scan & pay through to confirmation."""

    def test_student_three_tickets_confirms_450(self, client, details, wall_clock):
        client.post(reverse('tickets:submit_details'), details)
        response = client.post(reverse('tickets:initiate_payment'))
        assert response.url.endswith('#payment')

        loading = page(client)
        assert loading.context['snapshot'].loading
        assert b'http-equiv="refresh"' in loading.content

        wall_clock.advance(5)
        confirmed = page(client)
        snapshot = confirmed.context['snapshot']
        assert snapshot.stage == WorkflowStage.CONFIRMED
        assert snapshot.confirmation.total == 450
        assert b'id="confTotal">450<' in confirmed.content

    def test_amount_due_follows_stored_booking_after_tier_click(self, client, details, wall_clock):
        """Changing tier after submit changes neither the amount due nor the confirmation."""
        client.post(reverse('tickets:submit_details'), details)
        client.post(reverse('tickets:tier_shortcut'), {'tier': 'vvip'})
        client.post(reverse('tickets:change_quantity'), {'quantity': '10'})

        payment = page(client)
        assert payment.context['snapshot'].amount_due == 450
        assert b'id="amountDue">450<' in payment.content

        client.post(reverse('tickets:initiate_payment'))
        wall_clock.advance(5)
        confirmed = page(client).context['snapshot']
        assert confirmed.confirmation.total == 450
        assert stored_record(client)['ticket'] == 'regular'

    def test_pay_without_record_flashes_error(self, client, details):
        client.post(reverse('tickets:submit_details'), details)

        session = client.session
        del session[SESSION_KEY]
        session.save()
        client.cookies[settings.SESSION_COOKIE_NAME] = session.session_key

        response = client.post(reverse('tickets:initiate_payment'), follow=True)
        assert '❌ No booking found.' in flashed(response)
        assert response.context['snapshot'].stage == WorkflowStage.AWAITING_PAYMENT
        assert not response.context['snapshot'].loading

    def test_new_booking_clears_record(self, client, details, wall_clock):
        client.post(reverse('tickets:submit_details'), details)
        client.post(reverse('tickets:initiate_payment'))
        wall_clock.advance(5)
        page(client)

        response = client.post(reverse('tickets:new_booking'))
        assert response.url.endswith('#booking')
        assert stored_record(client) is None
        snapshot = page(client).context['snapshot']
        assert snapshot.stage == WorkflowStage.SELECTING
        assert snapshot.total == 150


class TestApi:
    """Tests for the JSON endpoints."""

    def test_state(self, client):
        data = client.get(reverse('tickets:api_state')).json()
        assert data['stage'] == 'SELECTING'
        assert data['sections']['booking'] is True

    def test_state_reports_progress(self, client, details, wall_clock):
        client.post(reverse('tickets:submit_details'), details)
        client.post(reverse('tickets:initiate_payment'))
        wall_clock.advance(2.5)
        data = client.get(reverse('tickets:api_state')).json()
        assert data['loading'] is True
        assert 0 < data['progress'] < 100

    def test_price(self, client):
        data = client.get(reverse('tickets:api_price'), {'ticket': 'vip', 'quantity': 'abc'}).json()
        assert data == {'ticket': 'vip', 'unit_price': 300, 'quantity': 1, 'total': 300}

    def test_price_unknown_ticket(self, client):
        response = client.get(reverse('tickets:api_price'), {'ticket': 'gold'})
        assert response.status_code == 400

    def test_normalize_phone_input(self, client):
        data = client.get(reverse('tickets:api_normalize'), {
            'field': 'phone', 'event': 'input', 'value': '+251 911-223344999',
        }).json()
        assert data['value'] == '+251911223344'

    def test_normalize_name_paste(self, client):
        data = client.get(reverse('tickets:api_normalize'), {
            'field': 'fullName', 'event': 'paste', 'value': 'Abebe ', 'pasted': 'Ke<b>bede',
        }).json()
        assert data['value'] == 'Abebe Kebbede'

    def test_email_input_is_not_filtered(self, client):
        data = client.get(reverse('tickets:api_normalize'), {
            'field': 'email', 'event': 'input', 'value': 'a b!',
        }).json()
        assert data['value'] == 'a b!'

    def test_phone_keydown_filter(self, client):
        url = reverse('tickets:api_normalize')
        assert client.get(url, {'field': 'phone', 'event': 'keydown', 'key': 'x', 'value': '+251'}).json()['allowed'] is False
        assert client.get(url, {'field': 'phone', 'event': 'keydown', 'key': '7', 'value': '+251'}).json()['allowed'] is True

    def test_normalize_accepts_post(self, client):
        data = client.post(reverse('tickets:api_normalize'), {
            'field': 'email', 'event': 'paste', 'value': '', 'pasted': 'a b<c>@x.et',
        }).json()
        assert data['value'] == 'abc@x.et'

    def test_normalize_rejects_unknown_field(self, client):
        response = client.get(reverse('tickets:api_normalize'), {'field': 'address', 'value': 'x'})
        assert response.status_code == 400

    def test_copy_account_number(self, client, settings):
        settings.PAYMENT_ACCOUNT_NUMBER = '1000777'
        data = client.get(reverse('tickets:api_copy', args=['accountNumber'])).json()
        assert data['text'] == '1000777'

    def test_copy_unknown_target(self, client):
        response = client.get(reverse('tickets:api_copy', args=['nothing']))
        assert response.status_code == 404
        assert response.json()['error'] == '⚠️ Could not copy. Please try manually.'

    def test_copy_result_success_and_failure(self, client):
        url = reverse('tickets:api_copy_result', args=['accountNumber'])
        ok = client.post(url, {'ok': 'true'}).json()
        assert ok['ok'] is True
        assert ok['toast_seconds'] == 1.5

        failed = client.post(url, {'ok': 'false'}).json()
        assert failed['ok'] is False
        assert failed['message'] == '⚠️ Could not copy. Please try manually.'


class TestErrorPages:
    def test_unknown_url_uses_custom_404(self, client):
        """Unknown paths render the site's own not-found page."""
        response = client.get('/no-such-page/')
        assert response.status_code == 404
        assert 'Back to tickets' in response.content.decode()
