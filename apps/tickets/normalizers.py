"""
Input normalisation for the booking form fields.

Every rule is purely corrective: disallowed characters are dropped, never
reported as errors. Rules run on each input event and on paste, so the
value a field holds is always already clean:

  full name   "Abebe 2 Kebede!"   →  "Abebe  Kebede"
  phone       "0911-22"           →  "+251"          (prefix lost → reset)
  phone       "+251 911 22 33 44" →  "+251911223344"
  email paste "a b@x.com;"        →  "ab@x.com"      (paste only)

Email deliberately has no keystroke filter; only pasted text is cleaned.
"""
import re

from django.db import models


class InputField(models.TextChoices):
    FULL_NAME = 'fullName', 'Full Name'
    PHONE     = 'phone',    'Phone'
    EMAIL     = 'email',    'Email'


PHONE_PREFIX = '+251'
PHONE_MAX_LENGTH = 13

# Keys that always reach the phone field
PHONE_CONTROL_KEYS = frozenset({
    'Backspace', 'Delete', 'ArrowLeft', 'ArrowRight', 'Tab', 'Home', 'End', 'Enter',
})

_NAME_DISALLOWED = re.compile(r"[^a-zA-Z\s\-']")
_PHONE_DISALLOWED = re.compile(r'[^0-9+]')
_EMAIL_DISALLOWED = re.compile(r'[^\w@.\-+_]', re.ASCII)
_DIGIT = re.compile(r'[0-9]')


def normalize_name(value: str) -> str:
    """Keep Latin letters, whitespace, hyphens and apostrophes."""
    return _NAME_DISALLOWED.sub('', value or '')


def normalize_phone(value: str) -> str:
    """
    Keep digits and '+'. A value that no longer starts with the country code
    is reset to the bare prefix. Never longer than PHONE_MAX_LENGTH.
    """
    value = _PHONE_DISALLOWED.sub('', value or '')
    if not value.startswith(PHONE_PREFIX):
        value = PHONE_PREFIX
    return value[:PHONE_MAX_LENGTH]


def sanitize_email(value: str) -> str:
    return _EMAIL_DISALLOWED.sub('', value or '')


def phone_key_allowed(key: str, caret: int, value: str) -> bool:
    """
    Keydown filter for the phone field. Digits and control keys pass;
    '+' passes only at position 0 when the field has no '+' yet.
    """
    if key in PHONE_CONTROL_KEYS:
        return True
    if key == '+' and caret == 0 and '+' not in value:
        return True
    return bool(_DIGIT.fullmatch(key or ''))


def normalize_input(field, value: str) -> str:
    """Rule applied to a field's whole value after every input event."""
    field = InputField(field)
    if field == InputField.FULL_NAME:
        return normalize_name(value)
    if field == InputField.PHONE:
        return normalize_phone(value)
    return value or ''


def sanitize_paste(field, text: str) -> str:
    """Strip pasted text before it is inserted into `field`."""
    field = InputField(field)
    if field == InputField.FULL_NAME:
        return normalize_name(text)
    if field == InputField.PHONE:
        return _PHONE_DISALLOWED.sub('', text or '')
    return sanitize_email(text)


def apply_paste(field, value: str, pasted: str, start: int = None, end: int = None) -> str:
    """
    Insert sanitised `pasted` text over the selection [start, end) of `value`
    (caret at the end when no selection is given), then run the field's
    input rule over the result, as the insertion itself is an input event.
    """
    value = value or ''
    start = len(value) if start is None else max(0, min(start, len(value)))
    end = start if end is None else max(start, min(end, len(value)))
    inserted = value[:start] + sanitize_paste(field, pasted) + value[end:]
    return normalize_input(field, inserted)


def apply_keystrokes(field, value: str, keys) -> str:
    """
    Replay keystrokes typed at the end of `value`. Phone keys go through the
    keydown filter first; every accepted key triggers the input rule.
    """
    field = InputField(field)
    value = value or ''
    for key in keys:
        if field == InputField.PHONE and not phone_key_allowed(key, len(value), value):
            continue
        if key == 'Backspace':
            value = value[:-1]
        elif len(key) != 1:
            # Navigation keys move the caret only
            continue
        else:
            value = value + key
        value = normalize_input(field, value)
    return value
