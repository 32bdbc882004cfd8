from .webhooks import (
    GoogleFormSubmission,
    StripeEvent,
    generate_google_form_script,
    google_form_initial_data,
    stripe_initial_data,
)

__all__ = [
    "GoogleFormSubmission",
    "StripeEvent",
    "generate_google_form_script",
    "google_form_initial_data",
    "stripe_initial_data",
]
