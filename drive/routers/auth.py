from pathlib import Path

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from drive.core.exceptions import AuthError, ValidationError
from drive.core.security import (
    authenticate,
    clear_session,
    establish_session,
    get_current_user,
    register_user,
    require_user,
)
from drive.models.database import get_db
from drive.models.user import User
from drive.schemas.forms import CredentialsForm, decode_form

router = APIRouter()

BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


@router.get("/", response_class=HTMLResponse)
def home(request: Request, user: User | None = Depends(get_current_user)):
    return templates.TemplateResponse(
        request, "index.html", {"is_authenticated": user is not None, "user": user}
    )


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    return templates.TemplateResponse(request, "register.html", {})


@router.post("/register")
def register(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        form = decode_form(CredentialsForm, email=email, password=password)
        user = register_user(db, form.email, form.password)
    except ValidationError as error:
        # covers the duplicate email case as well
        return templates.TemplateResponse(
            request,
            "register.html",
            {"error": error.message, "email": email},
            status_code=error.status_code,
        )

    establish_session(request, user)
    return RedirectResponse(url="/", status_code=302)


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {})


@router.post("/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        form = decode_form(CredentialsForm, email=email, password=password)
        user = authenticate(db, form.email, form.password)
    except (ValidationError, AuthError) as error:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"error": error.message, "email": email},
            status_code=error.status_code,
        )

    # login success → session cookie
    establish_session(request, user)
    return RedirectResponse(url="/", status_code=302)


@router.post("/logout")
def logout(request: Request, user: User = Depends(require_user)):
    clear_session(request)
    return RedirectResponse(url="/", status_code=302)
