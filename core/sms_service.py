# SMS gateway client used for login OTPs
import logging

import requests

from config import app_config

logger = logging.getLogger(__name__)


class SmsService:
    """Thin client for an HTTP SMS gateway (api key + mobile + message)."""

    def __init__(self):
        self.api_url = app_config.SMS_API_URL
        self.api_key = app_config.SMS_API_KEY

    def send_otp(self, mobile_number: str, code: str) -> bool:
        if not self.api_url:
            # No gateway configured (local development): log instead of sending
            logger.info(f"OTP for {mobile_number}: {code}")
            return True

        try:
            response = requests.post(
                self.api_url,
                json={
                    "apikey": self.api_key,
                    "mobile": mobile_number,
                    "message": f"{code} is your Collabzz verification code. It expires in {app_config.OTP_EXPIRY_MINUTES} minutes.",
                },
                timeout=15,
            )
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"SMS gateway error for {mobile_number}: {e}")
            return False
