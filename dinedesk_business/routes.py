"""Onboarding, profile and image upload endpoints for restaurant owners."""
from __future__ import annotations

from flask import jsonify
from flask_login import current_user

from dinedesk_auth.forms import ensure_valid
from dinedesk_auth.states import Role
from dinedesk_business import business_bp, profile, services
from dinedesk_business.forms import (
    ChangePasswordForm,
    ImageUploadForm,
    InformationSetupForm,
    ProfileUpdateForm,
    normalise_days,
)
from dinedesk_ext.auth import roles_required

owner_required = roles_required(Role.OWNER.value)


@business_bp.post("/info-setup")
@owner_required
def information_setup():
    form = ensure_valid(InformationSetupForm())
    info = services.complete_setup(
        current_user._get_current_object(),
        business_type=form.businessType.data,
        location=form.location.data,
        opening_days=normalise_days(form.openingDays.data),
        opening_time=form.openingTime.data,
        closing_time=form.closingTime.data,
        description=form.description.data,
        logo=form.logo.data,
        cover_photo=form.coverPhoto.data,
    )
    return jsonify(
        success=True,
        businessId=info.id,
        message="Business information saved successfully",
    )


@business_bp.get("/profile")
@owner_required
def get_profile():
    return jsonify(success=True, data=profile.get_profile(current_user._get_current_object()))


@business_bp.put("/profile")
@owner_required
def update_profile():
    form = ensure_valid(ProfileUpdateForm())
    data = profile.update_profile(
        current_user._get_current_object(),
        email=form.email.data,
        phone_number=form.phoneNumber.data,
        business_type=form.businessType.data,
        location=form.location.data,
        description=form.description.data if form.description.raw_data else None,
        opening_days=normalise_days(form.openingDays.data or []),
        opening_time=form.openingTime.data,
        closing_time=form.closingTime.data,
        logo=form.logo.data,
        cover_photo=form.coverPhoto.data,
    )
    return jsonify(success=True, data=data, message="Profile updated successfully")


@business_bp.post("/profile/password")
@owner_required
def change_password():
    form = ensure_valid(ChangePasswordForm())
    email_sent = profile.change_password(
        current_user._get_current_object(),
        form.currentPassword.data,
        form.newPassword.data,
    )
    return jsonify(success=True, emailSent=email_sent, message="Password changed successfully")


@business_bp.post("/upload-image")
@owner_required
def upload_image():
    form = ensure_valid(ImageUploadForm())
    url = services.upload_image(current_user._get_current_object(), form.image.data, form.folder.data)
    return jsonify(success=True, url=url)
