import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File as FastAPIFile, Form, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from drive.core.exceptions import DriveError
from drive.core.security import require_user
from drive.models.user import User
from drive.schemas.forms import UploadForm, decode_form
from drive.services.catalog import Catalog, UploadCommand, get_catalog

logger = logging.getLogger(__name__)

router = APIRouter()

BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _upload_page(request: Request, catalog: Catalog, user: User, **context):
    status_code = context.pop("status_code", 200)
    context.setdefault("folder_id", None)
    context["folders"] = catalog.list_root_folders(user.id)
    context["user"] = user
    return templates.TemplateResponse(request, "upload.html", context, status_code=status_code)


# --- upload form ---
@router.get("/upload-form", response_class=HTMLResponse)
def upload_form(
    request: Request,
    folder_id: Optional[int] = None,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    return _upload_page(request, catalog, user, folder_id=folder_id)


# --- upload a new file ---
@router.post("/upload", response_class=HTMLResponse)
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = FastAPIFile(None),
    folder_id: Optional[str] = Form(None),
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    if file is None or not file.filename:
        return _upload_page(
            request, catalog, user, error="No file uploaded.", status_code=400
        )

    try:
        form = decode_form(UploadForm, folder_id=folder_id)
        stored = await catalog.upload_file(
            UploadCommand(
                stream=file.file,
                filename=file.filename,
                mimetype=file.content_type or "application/octet-stream",
                owner_id=user.id,
                folder_id=form.folder_id,
                size=file.size,
            )
        )
    except DriveError as error:
        return _upload_page(
            request,
            catalog,
            user,
            error=error.message,
            folder_id=folder_id,
            status_code=error.status_code,
        )
    finally:
        # the spooled upload is our staging copy; drop it once the row is written
        try:
            await file.close()
        except Exception:
            logger.exception("Failed to clean up staged upload %s", file.filename)

    return _upload_page(
        request,
        catalog,
        user,
        message="File uploaded successfully!",
        uploaded=stored,
        folder_id=stored.folder_id,
    )


# --- file details ---
@router.get("/files/{file_id}", response_class=HTMLResponse)
def show_file(
    file_id: int,
    request: Request,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    file = catalog.get_file(file_id, user.id)
    return templates.TemplateResponse(request, "file.html", {"user": user, "file": file})


# --- download a file ---
@router.get("/download/{file_id}")
def download_file(
    file_id: int,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    file, location = catalog.download_file(file_id, user.id)

    if location.url is not None:
        return RedirectResponse(url=location.url, status_code=302)

    return FileResponse(location.path, media_type=file.mimetype, filename=file.filename)


# --- delete a file ---
@router.delete("/files/{file_id}")
async def delete_file(
    file_id: int,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    await catalog.delete_file(file_id, user.id)
    return RedirectResponse(url="/folders", status_code=302)
