import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lastminute.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Optional service account for the legacy Firestore import
FIREBASE_SERVICE_ACCOUNT_JSON_PATH = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")

# Frontend base URL for booking links and dashboard deep links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
DASHBOARD_URL = os.getenv("DASHBOARD_URL", f"{FRONTEND_URL}/dashboard/requests")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Last Minute <noreply@lastminute.app>")

# Twilio SMS Configuration (platform account, used for salon alerts)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")

# Stripe metered billing - one unit is reported per booking/consultation
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1").rstrip("/")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

# Rate limiting for public intake endpoints
# Set RATE_LIMIT_ENABLED=false only for development/testing
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
REDIS_URL = os.getenv("REDIS_URL")
PUBLIC_SUBMISSION_LIMIT = int(os.getenv("PUBLIC_SUBMISSION_LIMIT", "10"))
PUBLIC_SUBMISSION_WINDOW_SECONDS = int(os.getenv("PUBLIC_SUBMISSION_WINDOW_SECONDS", "3600"))

# Requests updated within this window show up in the "recently completed" group
RECENTLY_COMPLETED_HOURS = int(os.getenv("RECENTLY_COMPLETED_HOURS", "48"))

# Consultation upload caps (bytes)
MAX_IMAGE_UPLOAD_BYTES = int(os.getenv("MAX_IMAGE_UPLOAD_BYTES", str(10 * 1024 * 1024)))
MAX_VIDEO_UPLOAD_BYTES = int(os.getenv("MAX_VIDEO_UPLOAD_BYTES", str(50 * 1024 * 1024)))

# CORS - booking pages and the staff dashboard
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")
