# drive/schemas/forms.py
from typing import Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, field_validator

from drive.core.exceptions import ValidationError

FormT = TypeVar("FormT", bound=BaseModel)


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() in ("", "null", "None"):
        return None
    return value


class CredentialsForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("email", "password")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Email and password are required.")
        return value


class FolderCreateForm(BaseModel):
    name: str
    parent_id: Optional[int] = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def blank_parent(cls, value):
        return _blank_to_none(value)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Folder name is required.")
        return value


class FolderRenameForm(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Folder name is required.")
        return value


class UploadForm(BaseModel):
    folder_id: Optional[int] = None

    @field_validator("folder_id", mode="before")
    @classmethod
    def blank_folder(cls, value):
        return _blank_to_none(value)


def decode_form(model: Type[FormT], **fields) -> FormT:
    """Validate raw form values into ``model`` or raise a 400 ValidationError."""
    raw = {key: value for key, value in fields.items() if value is not None}
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as error:
        first = error.errors()[0]
        if first["type"] == "value_error":
            message = str(first["ctx"]["error"])
        elif first["type"] == "missing" and model is CredentialsForm:
            message = "Email and password are required."
        else:
            field_name = ".".join(str(part) for part in first["loc"]) or "form"
            message = f"Invalid value for {field_name}."
        raise ValidationError(message) from error
