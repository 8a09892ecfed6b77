"""Application-wide constants for the studio booking engine."""

from __future__ import annotations

BRAND_NAME = "Studio Booking"
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = (
    f"Backend API for {BRAND_NAME} - capacity-limited session bookings with weekly quotas"
)
API_VERSION = "1.0.0"

# Studio calendar
DEFAULT_STUDIO_TIMEZONE = "Australia/Sydney"
WEEK_START_FORMAT = "%Y-%m-%d"

# Slots
DEFAULT_SLOT_CAPACITY = 10

# Cancellation reasons recorded on the booking
REFUND_CANCELLATION_REASON = "User cancelled (credit returned)"
LATE_CANCELLATION_REASON = "Late cancellation (no credit)"

# Text constraints
MAX_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 1000

# Query limits
DEFAULT_QUERY_LIMIT = 100
RECENT_BOOKINGS_LIMIT = 20

# Gift vouchers
GIFT_VOUCHER_PREFIX = "HEAL-"
GIFT_VOUCHER_CODE_LENGTH = 10
GIFT_VOUCHER_VALIDITY_MONTHS = 12

# Webhook providers
STRIPE_PROVIDER = "stripe"
STRIPE_TEST_EVENT_PREFIX = "evt_test_"

# Scheduler marker key for the weekly quota sweep
WEEKLY_RESET_MARKER = "weekly_reset"
