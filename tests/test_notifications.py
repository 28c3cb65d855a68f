from jinja2 import TemplateError

from dinedesk_auth import notifications
from dinedesk_ext import email as email_ext
from dinedesk_ext.errors import UpstreamError


def test_templates_render_with_suppressed_delivery(app):
    assert notifications.send_approval_email("owner@example.com", "Test Bistro") is True
    assert notifications.send_rejection_email("owner@example.com", "Test Bistro", "Blurry license") is True
    assert notifications.send_password_reset_otp_email("owner@example.com", "123456", 5) is True
    assert notifications.send_password_changed_email("owner@example.com", "Test Bistro") is True


def test_delivery_failure_is_reported_not_raised(app, monkeypatch):
    def _fail(**kwargs):
        raise UpstreamError(user_msg="Failed to send email.", detail="connection refused")

    monkeypatch.setattr(email_ext, "send_email", _fail)
    assert notifications.send_password_changed_email("owner@example.com", "Test Bistro") is False


def test_message_carries_code_and_links(app, outbox):
    notifications.send_password_reset_otp_email("owner@example.com", "654321", 5)
    context = outbox[0]["context"]
    assert context["otp"] == "654321"
    assert context["login_url"].endswith("/login")
    assert outbox[0]["subject"] == "Your DineDesk password reset code"


def test_template_error_is_reported_not_raised(app, monkeypatch):
    def _broken(**kwargs):
        raise TemplateError("undefined variable")

    monkeypatch.setattr(email_ext, "send_email", _broken)
    assert notifications.send_approval_email("owner@example.com", "Test Bistro") is False
