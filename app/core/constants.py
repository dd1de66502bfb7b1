# app/core/constants.py
from datetime import timedelta, timezone

# All slots are offered in India Standard Time.
TARGET_TIMEZONE = timezone(timedelta(hours=5, minutes=30), "IST")
TARGET_TIMEZONE_LABEL = "Asia/Calcutta (GMT+5:30)"

BUSINESS_START_HOUR = 9
BUSINESS_END_HOUR = 18  # exclusive
BUSINESS_HOURS_LABEL = "9:00 AM - 6:00 PM"

SLOT_MINUTES = 30
MEETING_DURATION_MINUTES = 30
