import os
from datetime import timedelta

# DEV ONLY: hardcoded fallback secret. Set SECRET_KEY in the environment.
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=60)
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

DATABASE_URL = os.getenv("DATABASE_URL")  # None -> sqlite file next to the app

# Timeline policy
DEFAULT_GRACE_PERIOD_HOURS = 24
MAX_GRACE_PERIOD_HOURS = 24 * 365
DEFAULT_WARNING_PERIODS = (168, 72, 24)  # 7 days, 3 days, 1 day
OVERDUE_WARNING_PERIOD = 0  # ledger key for the one-off grace-period notice
DEMOTION_STEP = 1  # modules a student is moved back after missing a deadline

# Listing
DEFAULT_PAGE_SIZE = 20
MAX_NOTIFICATIONS = 50
