# Uploads Router for Collabzz
# Generic file upload to object storage; returns a URL the client stores on its record

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File, status

from database.models import User
from auth.dependencies import get_current_user
from core import minio_service

router = APIRouter(prefix="/uploads", tags=["Uploads"])

UPLOAD_FOLDERS = {
    "attachments", "posts", "logos", "banners", "platform",
    "kyc", "payout-proofs", "verification",
}


@router.post("")
async def upload(
    file: UploadFile = File(...),
    folder: str = Query("attachments"),
    current_user: User = Depends(get_current_user),
):
    """
    Upload a file. KYC, payout proof and verification folders return a
    time-limited private URL.
    """
    if folder not in UPLOAD_FOLDERS:
        raise HTTPException(status_code=400, detail=f"Unknown upload folder '{folder}'")

    content_type = file.content_type or "application/octet-stream"
    if not minio_service.is_allowed_content_type(content_type):
        raise HTTPException(status_code=400, detail=f"File type '{content_type}' not allowed")

    file_bytes = await file.read()
    if len(file_bytes) > minio_service.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File is too large")

    return minio_service.upload_file(
        file_bytes=file_bytes,
        original_filename=file.filename or "upload",
        content_type=content_type,
        folder=folder,
        owner_id=current_user.id,
    )
