# MinIO Storage Service for user uploads
# Avatars, channel logos, banner photos, KYC documents and message attachments

import boto3
import logging
import os
import uuid
from botocore.client import Config
from botocore.exceptions import ClientError
from datetime import datetime

logger = logging.getLogger(__name__)

MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "http://minio:9000")
# Public endpoint is what the browser will reach.
# In Docker dev the backend uses http://minio:9000 internally but the browser
# must use http://localhost:19000, so set MINIO_PUBLIC_ENDPOINT accordingly.
MINIO_PUBLIC_ENDPOINT = os.getenv("MINIO_PUBLIC_ENDPOINT", MINIO_ENDPOINT)
MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "")
MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "")
MINIO_BUCKET = os.getenv("MINIO_BUCKET", "collabzz-uploads")
MINIO_REGION = os.getenv("MINIO_REGION", "us-east-1")
# Presigned URL expiry (seconds) for private documents - 24 hours default
PRIVATE_URL_EXPIRY = int(os.getenv("MINIO_PRIVATE_URL_EXPIRY", "86400"))

# Folders whose objects are served through presigned URLs only
PRIVATE_FOLDERS = {"kyc", "payout-proofs", "verification"}

ALLOWED_CONTENT_PREFIXES = ("image/", "video/", "audio/", "application/pdf")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024)))


def _get_client():
    """Internal client using MINIO_ENDPOINT (Docker-internal address ok)."""
    return boto3.client(
        "s3",
        endpoint_url=MINIO_ENDPOINT,
        aws_access_key_id=MINIO_ACCESS_KEY,
        aws_secret_access_key=MINIO_SECRET_KEY,
        config=Config(signature_version="s3v4"),
        region_name=MINIO_REGION,
    )


def _get_public_client():
    """Client used only for presigning, so URLs carry the browser-reachable host."""
    return boto3.client(
        "s3",
        endpoint_url=MINIO_PUBLIC_ENDPOINT,
        aws_access_key_id=MINIO_ACCESS_KEY,
        aws_secret_access_key=MINIO_SECRET_KEY,
        config=Config(signature_version="s3v4"),
        region_name=MINIO_REGION,
    )


def ensure_bucket_exists():
    """Create the bucket if it doesn't already exist."""
    client = _get_client()
    try:
        client.head_bucket(Bucket=MINIO_BUCKET)
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        if error_code in ("404", "NoSuchBucket"):
            client.create_bucket(Bucket=MINIO_BUCKET)
            logger.info(f"MinIO bucket '{MINIO_BUCKET}' created")
        else:
            raise


def is_allowed_content_type(content_type: str) -> bool:
    return bool(content_type) and content_type.startswith(ALLOWED_CONTENT_PREFIXES)


def upload_file(
    file_bytes: bytes,
    original_filename: str,
    content_type: str,
    folder: str,
    owner_id: str,
) -> dict:
    """
    Upload a user file and return where it can be fetched from.

    Returns a dict with object_key, url, file_name, file_size and content_type.
    Files in private folders get a time-limited presigned URL; everything
    else gets a plain public URL.
    """
    ensure_bucket_exists()
    client = _get_client()

    safe_name = original_filename.replace(" ", "_")
    unique_id = str(uuid.uuid4())[:8]
    timestamp = datetime.utcnow().strftime("%Y%m%d")
    object_key = f"{folder}/{owner_id}/{timestamp}-{unique_id}-{safe_name}"

    client.put_object(
        Bucket=MINIO_BUCKET,
        Key=object_key,
        Body=file_bytes,
        ContentType=content_type,
    )

    if folder in PRIVATE_FOLDERS:
        url = generate_private_url(object_key)
    else:
        url = f"{MINIO_PUBLIC_ENDPOINT.rstrip('/')}/{MINIO_BUCKET}/{object_key}"

    return {
        "object_key": object_key,
        "url": url,
        "file_name": original_filename,
        "file_size": len(file_bytes),
        "content_type": content_type,
    }


def generate_private_url(object_key: str, expiry_seconds: int = PRIVATE_URL_EXPIRY) -> str:
    """Presigned GET URL for private documents (KYC, payout selfies)."""
    return _get_public_client().generate_presigned_url(
        "get_object",
        Params={"Bucket": MINIO_BUCKET, "Key": object_key},
        ExpiresIn=expiry_seconds,
    )


def delete_file(object_key: str) -> bool:
    """Delete an uploaded file."""
    client = _get_client()
    try:
        client.delete_object(Bucket=MINIO_BUCKET, Key=object_key)
        return True
    except ClientError as e:
        logger.warning(f"Could not delete {object_key}: {e}")
        return False
