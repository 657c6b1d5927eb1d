"""
Ticket pricing: pure functions, no request awareness.

Public API:
  TicketTier
  unit_price(tier)
  tier_label(tier)
  parse_quantity(raw, default=1)
  compute_total(tier, quantity)
"""
import re

from django.db import models


class TicketTier(models.TextChoices):
    STUDENT = 'regular', '🎓 Student Pass'
    STAFF   = 'vip',     '👔 Faculty & Staff'
    VIP     = 'vvip',    '🌟 VIP Experience'


DEFAULT_TIER = TicketTier.STUDENT

UNIT_PRICES = {
    TicketTier.STUDENT: 150,
    TicketTier.STAFF:   300,
    TicketTier.VIP:     500,
}

# Leading integer, the way a browser number field's text is read
_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def coerce_tier(tier) -> TicketTier:
    """Accept a TicketTier or its wire value. Raises ValueError for anything else."""
    return TicketTier(tier)


def unit_price(tier) -> int:
    return UNIT_PRICES[coerce_tier(tier)]


def tier_label(tier) -> str:
    return coerce_tier(tier).label


def parse_int(raw):
    """
    Parse the leading integer of `raw`: '3' → 3, ' 4 tickets' → 4, 'abc' → None.
    Ints pass through unchanged.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    match = _LEADING_INT.match(str(raw if raw is not None else ''))
    return int(match.group(1)) if match else None


def parse_quantity(raw, default: int = 1) -> int:
    """Effective quantity for pricing: falls back to `default` when unparsable or < 1."""
    value = parse_int(raw)
    if value is None or value < 1:
        return default
    return value


def compute_total(tier, quantity) -> int:
    return unit_price(tier) * parse_quantity(quantity)
