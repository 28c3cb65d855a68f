from dinedesk_auth import password_reset
from dinedesk_models.user import User
from tests.conftest import create_user


def test_create_super_admin_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=[
            "manage",
            "create-super-admin",
            "--email",
            "root@example.com",
            "--business-name",
            "Ops",
            "--phone",
            "5558888",
        ],
        input="Secret123\nSecret123\n",
    )
    assert result.exit_code == 0, result.output
    admin = User.query.filter_by(email="root@example.com").one()
    assert admin.role == "super-admin"
    assert admin.status == "approved"
    assert admin.first_login is False


def test_create_super_admin_refuses_duplicates(app):
    create_user(email="root@example.com", phone="5558888")
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["manage", "create-super-admin", "--email", "root@example.com", "--phone", "5550000"],
        input="Ops\nSecret123\nSecret123\n",
    )
    assert "already exists" in result.output
    assert User.query.count() == 1


def test_list_accounts_command(app):
    create_user()
    result = app.test_cli_runner().invoke(args=["manage", "list-accounts"])
    assert "owner@example.com - restaurant-owner [approved]" in result.output


def test_cleanup_command(app):
    create_user()
    password_reset.create_challenge("owner@example.com")
    result = app.test_cli_runner().invoke(args=["manage", "cleanup-reset-challenges"])
    assert "Removed 0 password reset challenge(s)." in result.output
