"""Forms for business setup, the owner profile and image uploads."""
from __future__ import annotations

from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import EmailField, PasswordField, SelectMultipleField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Email, EqualTo, Length, Optional, Regexp

from dinedesk_auth.forms import ApiForm, MaxFileSize, StrongPassword

DAY_NAMES = {
    "Mon": "monday",
    "Tue": "tuesday",
    "Wed": "wednesday",
    "Thu": "thursday",
    "Fri": "friday",
    "Sat": "saturday",
    "Sun": "sunday",
}

_DAY_CHOICES = [(short, short) for short in DAY_NAMES] + [(full, full) for full in DAY_NAMES.values()]
_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"
_IMAGE_TYPES = ["png", "jpg", "jpeg", "webp"]


def normalise_days(values: list[str]) -> list[str]:
    """Map ``Mon``-style names to ``monday`` and drop repeats, keeping order."""
    days: list[str] = []
    for value in values:
        day = DAY_NAMES.get(value, value.lower())
        if day not in days:
            days.append(day)
    return days


class InformationSetupForm(ApiForm):
    businessType = StringField(
        "Business type",
        validators=[DataRequired("Please select a business type"), Length(max=64)],
    )
    location = StringField(
        "Location",
        validators=[
            DataRequired("Location must be at least 3 characters long"),
            Length(min=3, max=255, message="Location must be at least 3 characters long"),
        ],
    )
    openingDays = SelectMultipleField(
        "Opening days",
        choices=_DAY_CHOICES,
        validate_choice=True,
        validators=[DataRequired("Please select at least one opening day")],
    )
    openingTime = StringField(
        "Opening time",
        validators=[
            DataRequired("Please select an opening time"),
            Regexp(_TIME_PATTERN, message="Opening time must use HH:MM"),
        ],
    )
    closingTime = StringField(
        "Closing time",
        validators=[
            DataRequired("Please select a closing time"),
            Regexp(_TIME_PATTERN, message="Closing time must use HH:MM"),
        ],
    )
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    logo = FileField(
        "Logo",
        validators=[
            FileAllowed(_IMAGE_TYPES, "Logo must be a PNG, JPG or WEBP image"),
            MaxFileSize("IMAGE_MAX_BYTES", "Logo must be less than 5MB"),
        ],
    )
    coverPhoto = FileField(
        "Cover photo",
        validators=[
            FileAllowed(_IMAGE_TYPES, "Cover photo must be a PNG, JPG or WEBP image"),
            MaxFileSize("IMAGE_MAX_BYTES", "Cover photo must be less than 5MB"),
        ],
    )


BUSINESS_TYPES = ["restaurant", "cafe", "bakery", "food_truck", "bar", "other"]
IMAGE_FOLDERS = ["logos", "covers", "menu-items"]
_PHONE_PATTERN = r"^\+?[0-9][0-9\s\-()]{5,19}$"


class ProfileUpdateForm(ApiForm):
    """Every field is optional. Absent fields keep their stored value."""

    email = EmailField(
        "Email",
        validators=[Optional(), Email("Invalid email address"), Length(max=255)],
    )
    phoneNumber = StringField(
        "Phone number",
        validators=[Optional(), Regexp(_PHONE_PATTERN, message="Invalid phone number format")],
    )
    businessType = StringField(
        "Business type",
        validators=[Optional(), AnyOf(BUSINESS_TYPES, message="Please select a valid business type")],
    )
    location = StringField(
        "Location",
        validators=[Optional(), Length(min=3, max=255, message="Location must be at least 3 characters long")],
    )
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    openingDays = SelectMultipleField("Opening days", choices=_DAY_CHOICES, validate_choice=True)
    openingTime = StringField(
        "Opening time",
        validators=[Optional(), Regexp(_TIME_PATTERN, message="Opening time must use HH:MM")],
    )
    closingTime = StringField(
        "Closing time",
        validators=[Optional(), Regexp(_TIME_PATTERN, message="Closing time must use HH:MM")],
    )
    logo = FileField(
        "Logo",
        validators=[
            FileAllowed(_IMAGE_TYPES, "Logo must be a PNG, JPG or WEBP image"),
            MaxFileSize("IMAGE_MAX_BYTES", "Logo must be less than 5MB"),
        ],
    )
    coverPhoto = FileField(
        "Cover photo",
        validators=[
            FileAllowed(_IMAGE_TYPES, "Cover photo must be a PNG, JPG or WEBP image"),
            MaxFileSize("IMAGE_MAX_BYTES", "Cover photo must be less than 5MB"),
        ],
    )

    def validate(self, extra_validators=None) -> bool:
        if not super().validate(extra_validators):
            return False
        hours = [bool(self.openingDays.data), bool(self.openingTime.data), bool(self.closingTime.data)]
        if any(hours) and not all(hours):
            self.openingDays.errors = list(self.openingDays.errors) + [
                "Opening days, opening time and closing time must be provided together"
            ]
            return False
        return True


class ChangePasswordForm(ApiForm):
    currentPassword = PasswordField(
        "Current password",
        validators=[DataRequired("Current password is required")],
    )
    newPassword = PasswordField(
        "New password",
        validators=[DataRequired("New password is required"), StrongPassword()],
    )
    confirmPassword = PasswordField(
        "Confirm password",
        validators=[DataRequired("Please confirm your password"), EqualTo("newPassword", "Passwords don't match")],
    )


class ImageUploadForm(ApiForm):
    image = FileField(
        "Image",
        validators=[
            FileRequired("No file uploaded"),
            FileAllowed(_IMAGE_TYPES, "Image must be a PNG, JPG or WEBP image"),
            MaxFileSize("IMAGE_MAX_BYTES", "Image must be less than 5MB"),
        ],
    )
    folder = StringField(
        "Folder",
        validators=[DataRequired("Folder is required"), AnyOf(IMAGE_FOLDERS, message="Invalid folder")],
    )
