from fastapi import APIRouter, Depends, File, UploadFile, status

from app.api.errors import DOMAIN_ERRORS, http_error
from app.core.auth import Principal
from app.core.config import Settings, get_settings
from app.core.security import get_admin_principal
from app.schemas.auth import UploadOut
from app.schemas.common import Envelope
from app.services.files import FileStore, get_file_store, image_constraints

router = APIRouter()


@router.post("", response_model=Envelope[UploadOut], status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[UploadOut]:
    try:
        stored = await file_store.save(file, image_constraints(settings), subdir="images", prefix="image")
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(
        data=UploadOut(url=stored.url, filename=stored.path, mimetype=stored.mime_type, size=stored.size),
        message="Image uploaded successfully",
    )
