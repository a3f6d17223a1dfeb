from fastapi import HTTPException, status
from fastapi.responses import FileResponse

from app.api.errors import DOMAIN_ERRORS, http_error
from app.services import records
from app.services.entities import EntitySpec
from app.services.files import FileStore
from app.services.repository import RecordStore


async def attachment_response(
    repository: RecordStore,
    file_store: FileStore,
    spec: EntitySpec,
    key: str,
) -> FileResponse:
    """Serve an active record's attachment and count the download."""
    try:
        row = await records.require_record(repository, spec, key, include_inactive=False)
        path = row.get("file_path")
        if not file_store.exists(path):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
        await repository.increment_download_count(spec.kind, int(row["id"]))
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc

    return FileResponse(
        file_store.resolve(path),
        media_type=row.get("file_type") or "application/pdf",
        filename=row.get("file_name") or None,
    )
