# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/rentalhub/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "rentalhub:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--role Vendor]
#   List users with their roles.
# - python -m flask users create --username admin --email admin@rental.local --password "Password123" --role Administrator
#   Create a user (prompts if options are omitted).
# - python -m flask users set-role alice Vendor
#   Change a user's role and revoke their open sessions.
#
# Permission inspection:
# - python -m flask perms list [--role Vendor]
#   Print the permission matrix.
# - python -m flask perms check Vendor product update
#   Check whether a role may perform an action on a resource.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete revoked and idle sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import (
    Role, Resource, Action, DEFAULT_MATRIX,
    get_all_roles, validate_role, validate_resource, validate_action,
)
from .services import auth_service, session_service
from .services.auth_service import RegistrationError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes and not click.confirm("This deletes ALL data. Continue?"):
        click.echo("Aborted.")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@click.option('--role', type=click.Choice(get_all_roles()), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Role'}")
    click.echo("="*80)

    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<35} {user.role}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(get_all_roles()), default=Role.CUSTOMER, show_default=True)
@click.option('--business-name', default=None, help='Vendor business name')
@with_appcontext
def create_user(username, email, password, role, business_name):
    """Create a user account."""
    try:
        user = auth_service.register(username, email, password, role=role, business_name=business_name)
    except RegistrationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('set-role')
@click.argument('username')
@click.argument('role')
@with_appcontext
def set_role(username, role):
    """Change a user's role (revokes their sessions)."""
    if not validate_role(role):
        raise click.ClickException(f"Unknown role '{role}'. Valid: {', '.join(Role.ALL)}")

    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    auth_service.change_role(user.id, role)
    click.echo(f"PASS {username} is now {role}")


@click.group('perms')
def perms_group():
    """Permission matrix inspection."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(get_all_roles()), help='Only this role')
def list_perms(role):
    """Print the permission matrix."""
    roles = [role] if role else DEFAULT_MATRIX.roles()
    for role_name in roles:
        click.echo(f"\n{role_name}")
        for resource, actions in DEFAULT_MATRIX.get_permissions_for_role(role_name).items():
            ordered = [action for action in Action.ALL if action in actions]
            click.echo(f"  {resource:<16} {', '.join(ordered)}")


@perms_group.command('check')
@click.argument('role')
@click.argument('resource')
@click.argument('action')
def check_perm(role, resource, action):
    """Check whether ROLE may perform ACTION on RESOURCE."""
    if not validate_role(role):
        raise click.ClickException(f"Unknown role '{role}'. Valid: {', '.join(Role.ALL)}")
    if not validate_resource(resource):
        raise click.ClickException(f"Unknown resource '{resource}'. Valid: {', '.join(Resource.ALL)}")
    if not validate_action(action):
        raise click.ClickException(f"Unknown action '{action}'. Valid: {', '.join(Action.ALL)}")

    if DEFAULT_MATRIX.has_permission(role, resource, action):
        click.echo(f"ALLOW {role} {action} {resource}")
    else:
        click.echo(f"DENY  {role} {action} {resource}")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions(retention_days):
    """Delete revoked and idle sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
