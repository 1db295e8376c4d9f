# Overview: Pytest coverage for the Flask CLI command groups.

from rentalhub.extensions import db
from rentalhub.models import User
from rentalhub.permissions import Role


def test_perms_check(app):
    runner = app.test_cli_runner()

    allowed = runner.invoke(args=['perms', 'check', 'Vendor', 'product', 'update'])
    denied = runner.invoke(args=['perms', 'check', 'Customer', 'product', 'update'])

    assert allowed.exit_code == 0
    assert "ALLOW Vendor update product" in allowed.output
    assert "DENY  Customer update product" in denied.output


def test_perms_check_unknown_names(app):
    result = app.test_cli_runner().invoke(args=['perms', 'check', 'Guest', 'product', 'read'])
    assert result.exit_code != 0
    assert "Unknown role 'Guest'" in result.output


def test_perms_list(app):
    result = app.test_cli_runner().invoke(args=['perms', 'list', '--role', 'Customer'])
    assert result.exit_code == 0
    assert "create, read" in result.output


def test_users_create_and_set_role(app):
    runner = app.test_cli_runner()

    created = runner.invoke(args=[
        'users', 'create',
        '--username', 'dave',
        '--email', 'dave@rental.test',
        '--password', 'Password123',
    ])
    assert created.exit_code == 0, created.output

    promoted = runner.invoke(args=['users', 'set-role', 'dave', 'Vendor'])
    assert promoted.exit_code == 0, promoted.output

    with app.app_context():
        user = db.session.query(User).filter_by(username='dave').one()
        assert user.role == Role.VENDOR
        assert user.vendor is not None


def test_users_create_rejects_invalid(app):
    result = app.test_cli_runner().invoke(args=[
        'users', 'create',
        '--username', 'ab',
        '--email', 'ab@rental.test',
        '--password', 'Password123',
    ])
    assert result.exit_code != 0
    assert "Username must be at least 3 characters" in result.output


def test_cleanup_sessions(app):
    result = app.test_cli_runner().invoke(args=['maintenance', 'cleanup-sessions'])
    assert result.exit_code == 0
    assert "Deleted 0 session(s)" in result.output
