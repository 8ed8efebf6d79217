"""
Fixed attendance and leave policy values
"""
from decimal import Decimal

SERVICE_NAME = "attendance-leave-backend"

# 6/8/10 rule (hours)
HALF_DAY_THRESHOLD = 6.0
SHORT_DAY_THRESHOLD = 8.0
AUTO_LOGOUT_HOURS = 10.0

# Total closed break minutes allowed per attendance record
MAX_BREAK_MINUTES = 75

# Annual quota reset runs on this (month, day)
QUOTA_RESET_MONTH = 12
QUOTA_RESET_DAY = 31

HALF_DAY_LEAVE = Decimal("0.5")

MIDNIGHT_CROSSING_NOTE = "System: Midnight crossing"
AUTO_LOGOUT_NOTE = "Auto-logout: 10 hour limit reached"

SYSTEM_ERROR_MESSAGE = "System error occurred"
