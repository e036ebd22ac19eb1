from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from drive.core.exceptions import DriveError, ValidationError
from drive.core.security import require_user
from drive.models.user import User
from drive.schemas.forms import FolderCreateForm, FolderRenameForm, decode_form
from drive.services.catalog import Catalog, get_catalog

router = APIRouter()

BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _folders_page(request: Request, catalog: Catalog, user: User, status_code=200, **context):
    context.update(
        user=user,
        folders=catalog.list_root_folders(user.id),
        files=catalog.list_root_files(user.id),
    )
    return templates.TemplateResponse(request, "folders.html", context, status_code=status_code)


def _folder_page(request: Request, catalog: Catalog, user: User, folder_id: int,
                 status_code=200, **context):
    contents = catalog.get_folder(folder_id, user.id)
    context.update(
        user=user,
        folder=contents.folder,
        files=contents.files,
        children=contents.children,
        breadcrumbs=catalog.folder_path(contents.folder),
    )
    return templates.TemplateResponse(request, "folder.html", context, status_code=status_code)


def _form_error_page(request: Request, catalog: Catalog, user: User,
                     error: ValidationError, folder_id: Optional[int] = None):
    # show the error on the folder the form came from when it is the user's
    if folder_id is not None:
        try:
            return _folder_page(
                request, catalog, user, folder_id,
                error=error.message, status_code=error.status_code,
            )
        except DriveError:
            pass
    return _folders_page(
        request, catalog, user, error=error.message, status_code=error.status_code
    )


# --- create a folder (root or nested) ---
@router.post("/create-folder")
def create_folder(
    request: Request,
    name: str = Form(""),
    parent_id: Optional[str] = Form(None),
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    try:
        form = decode_form(FolderCreateForm, name=name, parent_id=parent_id)
        catalog.create_folder(form.name, owner_id=user.id, parent_id=form.parent_id)
    except ValidationError as error:
        source = (parent_id or "").strip()
        return _form_error_page(
            request, catalog, user, error, int(source) if source.isdigit() else None
        )

    if form.parent_id is not None:
        return RedirectResponse(url=f"/folders/{form.parent_id}", status_code=302)
    return RedirectResponse(url="/folders", status_code=302)


# --- root folders (and loose files) of the current user ---
@router.get("/folders", response_class=HTMLResponse)
def list_folders(
    request: Request,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    return _folders_page(request, catalog, user)


# --- one folder with its direct children ---
@router.get("/folders/{folder_id}", response_class=HTMLResponse)
def show_folder(
    folder_id: int,
    request: Request,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    return _folder_page(request, catalog, user, folder_id)


# --- rename ---
@router.put("/folders/{folder_id}")
def rename_folder(
    folder_id: int,
    request: Request,
    name: str = Form(""),
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    try:
        form = decode_form(FolderRenameForm, name=name)
        catalog.rename_folder(folder_id, form.name, user.id)
    except ValidationError as error:
        return _form_error_page(request, catalog, user, error, folder_id)
    return RedirectResponse(url=f"/folders/{folder_id}", status_code=302)


# --- delete the folder and everything below it ---
@router.delete("/folders/{folder_id}")
async def delete_folder(
    folder_id: int,
    catalog: Catalog = Depends(get_catalog),
    user: User = Depends(require_user),
):
    await catalog.delete_folder(folder_id, user.id)
    return RedirectResponse(url="/folders", status_code=302)
