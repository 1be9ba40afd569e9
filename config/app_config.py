import os
from dotenv import load_dotenv

load_dotenv()

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-here")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))
OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", 5))
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")

# Payment gateway (Cashfree hosted checkout)
CASHFREE_APP_ID = os.getenv("CASHFREE_APP_ID", "")
CASHFREE_SECRET_KEY = os.getenv("CASHFREE_SECRET_KEY", "")
CASHFREE_ENV = os.getenv("CASHFREE_ENV", "sandbox")  # sandbox | production
CASHFREE_API_VERSION = os.getenv("CASHFREE_API_VERSION", "2023-08-01")
CASHFREE_PAYOUT_CLIENT_ID = os.getenv("CASHFREE_PAYOUT_CLIENT_ID", "")
CASHFREE_PAYOUT_SECRET = os.getenv("CASHFREE_PAYOUT_SECRET", "")
PAYMENT_RETURN_URL = os.getenv("PAYMENT_RETURN_URL", "https://collabzz.app/payment-status?order_id={order_id}")
# Minutes a pending checkout blocks a second order and seller cancellation
CHECKOUT_ORDER_TTL_MINUTES = int(os.getenv("CHECKOUT_ORDER_TTL_MINUTES", 30))
CURRENCY = "INR"

# Push (FCM legacy HTTP API)
FCM_SERVER_KEY = os.getenv("FCM_SERVER_KEY", "")

# SMS gateway used for OTP delivery
SMS_API_URL = os.getenv("SMS_API_URL", "")
SMS_API_KEY = os.getenv("SMS_API_KEY", "")

# Referral rewards (coins)
REFERRER_REWARD_COINS = int(os.getenv("REFERRER_REWARD_COINS", 50))
REFERRED_REWARD_COINS = int(os.getenv("REFERRED_REWARD_COINS", 20))

# Boosts
BOOST_DURATION_DAYS = int(os.getenv("BOOST_DURATION_DAYS", 7))

# Background jobs
SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
MAINTENANCE_INTERVAL_MINUTES = int(os.getenv("MAINTENANCE_INTERVAL_MINUTES", 60))
