"""
Ticketing page URLs.

Page:
  /                                 Booking form, payment or confirmation section

Intents (POST, redirect back to the page section):
  /tier/shortcut/                   Quick-select a ticket tier from its card
  /tier/                            Change tier in the booking form
  /quantity/                        Change quantity in the booking form
  /details/                         Submit buyer details → payment section
  /pay/                             Scan & pay → timed payment check
  /new/                             Start a new booking

AJAX:
  /api/state/                       Workflow snapshot (progress polling)
  /api/price/                       Live price for tier + quantity
  /api/normalize/                   Live field normalisation / phone key filter
  /api/copy/<target>/               Text behind a copy button
  /api/copy/<target>/result/        Clipboard write outcome → toast or fallback
"""
from django.urls import path
from . import views

app_name = 'tickets'

urlpatterns = [
    # ── Page ───────────────────────────────────────────────────────────────────
    path('',                          views.home,                 name='home'),

    # ── Workflow intents ───────────────────────────────────────────────────────
    path('tier/shortcut/',            views.select_tier_shortcut, name='tier_shortcut'),
    path('tier/',                     views.change_tier,          name='change_tier'),
    path('quantity/',                 views.change_quantity,      name='change_quantity'),
    path('details/',                  views.submit_details,       name='submit_details'),
    path('pay/',                      views.initiate_payment,     name='initiate_payment'),
    path('new/',                      views.new_booking,          name='new_booking'),

    # ── AJAX endpoints ─────────────────────────────────────────────────────────
    path('api/state/',                views.api_state,            name='api_state'),
    path('api/price/',                views.api_price,            name='api_price'),
    path('api/normalize/',            views.api_normalize,        name='api_normalize'),
    path('api/copy/<str:target>/',    views.api_copy_text,        name='api_copy'),
    path('api/copy/<str:target>/result/', views.api_copy_result,  name='api_copy_result'),
]
