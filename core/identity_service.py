# Identity checks: Google sign-in tokens and (mock) KYC / payout account verification
import logging
import re
from typing import Optional, Dict, Any

import requests

from config import app_config

logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"

PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
ACCOUNT_PATTERN = re.compile(r"^[0-9]{9,18}$")
UPI_PATTERN = re.compile(r"^[a-zA-Z0-9._-]{2,256}@[a-zA-Z]{2,64}$")


def verify_google_id_token(id_token: str) -> Optional[Dict[str, Any]]:
    """
    Validate a Google ID token with the tokeninfo endpoint.

    Returns the claims (email, name, picture, sub) or None when invalid.
    """
    try:
        response = requests.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token}, timeout=10)
    except requests.exceptions.RequestException as e:
        logger.error(f"Google tokeninfo request failed: {e}")
        return None

    if response.status_code != 200:
        return None

    claims = response.json()
    if app_config.GOOGLE_CLIENT_ID and claims.get("aud") != app_config.GOOGLE_CLIENT_ID:
        logger.warning("Google token issued for a different client id")
        return None
    if str(claims.get("email_verified", "")).lower() != "true":
        return None
    return claims


def mock_digilocker_details(status: str) -> Optional[Dict[str, Any]]:
    """Details returned by the sandbox DigiLocker flow."""
    if status != "approved":
        return None
    return {
        "verified_by": "DigiLocker",
        "id_type": "Aadhaar",
        "address": "Verified via DigiLocker",
        "city": "Verified",
        "state": "Verified",
        "pincode": "000000",
    }


def verify_pan(pan_number: str, name: str) -> Dict[str, Any]:
    pan = (pan_number or "").strip().upper()
    valid = bool(PAN_PATTERN.match(pan))
    return {
        "valid": valid,
        "pan_number": pan,
        "registered_name": name.upper() if valid else None,
        "message": "PAN verified" if valid else "Invalid PAN format",
    }


def verify_bank_account(account_number: str, ifsc_code: str, account_holder_name: str) -> Dict[str, Any]:
    account = (account_number or "").strip()
    ifsc = (ifsc_code or "").strip().upper()
    valid = bool(ACCOUNT_PATTERN.match(account)) and bool(IFSC_PATTERN.match(ifsc))
    return {
        "valid": valid,
        "account_number": account,
        "ifsc_code": ifsc,
        "name_at_bank": account_holder_name if valid else None,
        "message": "Bank account verified" if valid else "Invalid account number or IFSC code",
    }


def verify_upi(upi_id: str, name: str) -> Dict[str, Any]:
    upi = (upi_id or "").strip()
    valid = bool(UPI_PATTERN.match(upi))
    return {
        "valid": valid,
        "upi_id": upi,
        "name_at_bank": name if valid else None,
        "message": "UPI id verified" if valid else "Invalid UPI id",
    }
