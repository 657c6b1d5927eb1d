from django import forms

from .normalizers import PHONE_MAX_LENGTH, PHONE_PREFIX, normalize_name, normalize_phone, sanitize_email
from .pricing import DEFAULT_TIER, TicketTier


class BookingDetailsForm(forms.Form):
    """
    Booking form. Fields are cleaned with the same rules the page applies
    while typing; required-field checks are left to the workflow so a failed
    submit never reaches the booking record.
    """
    full_name = forms.CharField(
        required=False,
        max_length=120,
        label='Full Name',
        widget=forms.TextInput(attrs={
            'class': 'form-control',
            'placeholder': 'Your full name',
            'autocomplete': 'name',
            'id': 'fullName',
        }),
    )
    phone = forms.CharField(
        required=False,
        max_length=20,
        label='Phone Number',
        initial=PHONE_PREFIX,
        widget=forms.TextInput(attrs={
            'class': 'form-control',
            'placeholder': '+251 9XX XXX XXX',
            'autocomplete': 'tel',
            'inputmode': 'tel',
            'maxlength': PHONE_MAX_LENGTH,
            'id': 'phone',
        }),
    )
    email = forms.EmailField(
        required=False,
        label='Email Address',
        widget=forms.EmailInput(attrs={
            'class': 'form-control',
            'placeholder': 'you@example.com',
            'autocomplete': 'email',
            'id': 'email',
        }),
    )
    tier = forms.ChoiceField(
        choices=TicketTier.choices,
        initial=DEFAULT_TIER,
        label='Ticket Type',
        widget=forms.Select(attrs={'class': 'form-control', 'id': 'ticketType'}),
    )
    quantity = forms.CharField(
        required=False,
        initial='1',
        label='Quantity',
        widget=forms.NumberInput(attrs={'class': 'form-control', 'min': 1, 'id': 'quantity'}),
    )

    def clean_full_name(self):
        return normalize_name(self.cleaned_data.get('full_name', ''))

    def clean_phone(self):
        raw = self.cleaned_data.get('phone', '')
        if not raw:
            return ''
        return normalize_phone(raw)

    def clean_email(self):
        return sanitize_email(self.cleaned_data.get('email', ''))

    @classmethod
    def from_snapshot(cls, snapshot):
        form = snapshot.form
        return cls(initial={
            'full_name': form.full_name,
            'phone':     form.phone,
            'email':     form.email,
            'tier':      form.tier.value,
            'quantity':  form.quantity,
        })
