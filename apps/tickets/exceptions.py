"""
Custom exceptions for the booking workflow.
Raised in machine.py / clipboard.py and caught in views.py for clean error handling.
"""


class BookingWorkflowError(Exception):
    """Base exception for all booking workflow errors."""
    message = 'Something went wrong with your booking.'

    def __init__(self, message: str = None):
        super().__init__(message or self.message)


class BookingValidationError(BookingWorkflowError):
    """Raised when submitted details are missing a required field or the quantity is below 1."""
    message = '⚠️ Please fill all required fields.'

    def __init__(self, errors: dict, message: str = None):
        super().__init__(message)
        self.errors = dict(errors)


class MissingBookingError(BookingWorkflowError):
    """Raised when payment is initiated but no pending booking is stored."""
    message = '❌ No booking found.'


class CopyFailure(BookingWorkflowError):
    """Raised when a copy target has no text, or the platform rejected the clipboard write."""
    message = '⚠️ Could not copy. Please try manually.'
