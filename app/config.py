import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chirho.db")

# Firebase Configuration (ID token audience / issuer)
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Dodo Payments Configuration
DODO_PAYMENTS_API_KEY = os.getenv("DODO_PAYMENTS_API_KEY")
DODO_PAYMENTS_WEBHOOK_SECRET = os.getenv("DODO_PAYMENTS_WEBHOOK_SECRET")
# "test_mode" or "live_mode" - default to test for safety
DODO_PAYMENTS_ENVIRONMENT = os.getenv("DODO_PAYMENTS_ENVIRONMENT", "test_mode")
# Pay-what-you-want product used for registration deposits and balance payments
DODO_ADHOC_PRODUCT_ID = os.getenv("DODO_ADHOC_PRODUCT_ID")

# Shared secret for scheduler-triggered endpoints (weekly digest)
CRON_SECRET = os.getenv("CRON_SECRET")
if not CRON_SECRET:
    import warnings

    warnings.warn("CRON_SECRET not set! Cron endpoints will reject every request", RuntimeWarning, stacklevel=2)

# Frontend base URL for links in emails and checkout return URLs
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "ChiRho Events <noreply@chirhoevents.com>")

# Registration windows
WAITLIST_INVITATION_HOURS = int(os.getenv("WAITLIST_INVITATION_HOURS", "48"))
PARENT_LINK_EXPIRY_DAYS = int(os.getenv("PARENT_LINK_EXPIRY_DAYS", "7"))
CLOSING_SOON_HOURS = int(os.getenv("CLOSING_SOON_HOURS", "48"))

# HTTP surface
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",") if o.strip()]
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
