"""
Opening line spoken when the salon picks up.
"""

from voice_booking.calls.models import BookingRequest


def build_greeting(booking: BookingRequest) -> str:
    """Build the greeting from the customer's booking preferences.

    Mentions the preferred date and/or time when given, otherwise says the
    customer is flexible.
    """
    date = (booking.preferred_date or "").strip()
    time = (booking.preferred_time or "").strip()

    greeting = (
        f"Hello! I'm calling on behalf of {booking.customer_name} "
        f"to schedule a {booking.service} appointment."
    )

    if date and time:
        greeting += f" They were hoping to come in on {date} around {time}."
    elif date:
        greeting += f" They were hoping to come in on {date}."
    elif time:
        greeting += f" They were hoping to come in around {time}."
    else:
        greeting += " They are flexible on timing and are looking for the next available slot."

    greeting += " Is that something you can help me with?"
    return greeting
