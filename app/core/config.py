import os
from dotenv import load_dotenv

load_dotenv()

# ---------- DATABASE ----------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rentals.db")

# ---------- AUTH (tokens are issued by the user service) ----------
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

# ---------- RAZORPAY ----------
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
CHECKOUT_NAME = os.getenv("CHECKOUT_NAME", "RideOnGo")
PAYMENT_MODE = "RAZORPAY"

# ---------- PRICING ----------
# Amounts are integer minor units (paise for INR)
CURRENCY = os.getenv("CURRENCY", "INR")
GST_PERCENT = int(os.getenv("GST_PERCENT", 18))
WEEKLY_DISCOUNT_PERCENT = int(os.getenv("WEEKLY_DISCOUNT_PERCENT", 10))

# ---------- MISC ----------
REDIS_URL = os.getenv("REDIS_URL")

# ---------- LOGGING ----------
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_ROTATION = os.getenv("LOG_ROTATION", "1 week")
LOG_RETENTION = os.getenv("LOG_RETENTION", "4 weeks")
ERROR_LOG_RETENTION = os.getenv("ERROR_LOG_RETENTION", "8 weeks")
