"""Credential forms for sign-in and password recovery."""

from __future__ import annotations

from typing import Annotated

from pydantic import ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from sitecms.content.schemas import Email, FormModel, Password, Required


class LoginForm(FormModel):
    email: Email = ""
    password: Annotated[Password, Required("Password")] = ""


class ForgotPasswordForm(FormModel):
    email: Email = ""


class ResetPasswordForm(FormModel):
    password: Annotated[Password, Required("Password")] = ""
    confirm_password: str = ""

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        # password is missing from info.data when it failed its own checks
        if "password" in info.data and value != info.data["password"]:
            raise PydanticCustomError("mismatch", "Passwords don't match")
        return value
