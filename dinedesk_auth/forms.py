"""Input forms for the account and password reset endpoints."""
from __future__ import annotations

import re

from flask import current_app
from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import EmailField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, EqualTo, Length, ValidationError as FieldError

from dinedesk_ext.errors import ValidationError


class ApiForm(FlaskForm):
    """Form bound to JSON or multipart request bodies without a CSRF field."""

    class Meta:
        csrf = False


def ensure_valid(form: FlaskForm, message: str = "Validation failed") -> FlaskForm:
    """Validate ``form`` or raise the field errors as a :class:`ValidationError`."""
    if not form.validate():
        errors = {name: [str(item) for item in messages] for name, messages in form.errors.items()}
        raise ValidationError(user_msg=message, errors=errors)
    return form


class StrongPassword:
    """At least eight characters mixing upper case, lower case and digits."""

    def __call__(self, form, field) -> None:
        value = field.data or ""
        if len(value) < 8:
            raise FieldError("Password must be at least 8 characters")
        if not re.search(r"[A-Z]", value):
            raise FieldError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", value):
            raise FieldError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", value):
            raise FieldError("Password must contain at least one number")


class MaxFileSize:
    """Reject uploads larger than the byte limit stored under ``config_key``."""

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        self.message = message

    def __call__(self, form, field) -> None:
        upload = field.data
        if upload is None or not getattr(upload, "filename", None):
            return
        stream = upload.stream
        stream.seek(0, 2)
        size = stream.tell()
        stream.seek(0)
        if size > int(current_app.config.get(self.config_key, 5 * 1024 * 1024)):
            raise FieldError(self.message)


class OtpFormat:
    def __call__(self, form, field) -> None:
        length = int(current_app.config.get("OTP_LENGTH", 6))
        if not re.fullmatch(rf"\d{{{length}}}", (field.data or "").strip()):
            raise FieldError(f"OTP must be exactly {length} digits")


class SignupForm(ApiForm):
    businessName = StringField(
        "Business name",
        validators=[DataRequired("Business name is required"), Length(max=255)],
    )
    email = EmailField(
        "Email",
        validators=[DataRequired("Email is required"), Email("Invalid email address"), Length(max=255)],
    )
    phoneNumber = StringField(
        "Phone number",
        validators=[DataRequired("Phone number is required"), Length(max=32)],
    )
    password = PasswordField("Password", validators=[DataRequired("Password is required"), StrongPassword()])
    confirmPassword = PasswordField(
        "Confirm password",
        validators=[DataRequired("Please confirm your password"), EqualTo("password", "Passwords don't match")],
    )
    licenseFile = FileField(
        "Business license",
        validators=[
            FileRequired("Business license file is required"),
            FileAllowed(["pdf", "png", "jpg", "jpeg"], "Please upload a PDF, JPG, or PNG file"),
            MaxFileSize("LICENSE_MAX_BYTES", "File size must be less than 5MB"),
        ],
    )


class LoginForm(ApiForm):
    emailOrPhone = StringField("Email or phone", validators=[DataRequired("This field cannot be empty")])
    password = PasswordField("Password", validators=[DataRequired("Password is required")])


class ForgotPasswordForm(ApiForm):
    email = EmailField(
        "Email",
        validators=[DataRequired("Email is required"), Email("Please enter a valid email address")],
    )


class VerifyOtpForm(ApiForm):
    email = EmailField("Email", validators=[DataRequired("Email is required"), Email("Invalid email address")])
    otp = StringField("Verification code", validators=[DataRequired("OTP code is required"), OtpFormat()])


class ResetPasswordForm(ApiForm):
    resetToken = StringField("Reset token", validators=[DataRequired("Reset token is required")])
    newPassword = PasswordField("New password", validators=[DataRequired("Password is required"), StrongPassword()])
    confirmPassword = PasswordField(
        "Confirm password",
        validators=[DataRequired("Please confirm your password"), EqualTo("newPassword", "Passwords don't match")],
    )
