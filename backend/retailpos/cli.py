# Overview: Flask CLI command groups for bootstrap, inspection, and seeding.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin, manager and cashier users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --email admin@retailpos.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Catalog:
# - python -m flask catalog seed
#   Insert sample suppliers, products and customers (skips rows that already exist).

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Product, Supplier, USER_ROLES, User
from .services.auth_service import create_user, PasswordValidationError
from .validation import ConflictError, ValidationError

DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = (
    ("admin", "admin@retailpos.local", "admin", "Store Admin"),
    ("manager", "manager@retailpos.local", "manager", "Store Manager"),
    ("cashier", "cashier@retailpos.local", "cashier", "Front Cashier"),
)

SAMPLE_SUPPLIERS = (
    {"name": "Northwind Traders", "contact_name": "Anne Dodsworth", "email": "orders@northwind.example", "phone": "555-0100"},
    {"name": "Contoso Wholesale", "contact_name": "Ravi Patel", "email": "sales@contoso.example", "phone": "555-0101"},
)

SAMPLE_PRODUCTS = (
    # sku, name, category, subcategory, supplier, cost, price, quantity, min_stock
    ("BEV-COF-001", "House Blend Coffee 1kg", "Beverages", "Coffee", "Northwind Traders", "11.50", "19.99", 40, 10),
    ("BEV-TEA-001", "Green Tea 100 bags", "Beverages", "Tea", "Northwind Traders", "3.20", "6.49", 25, 10),
    ("SNK-CHP-001", "Sea Salt Chips 150g", "Snacks", "Chips", "Contoso Wholesale", "0.90", "2.49", 120, 30),
    ("SNK-BAR-001", "Protein Bar Chocolate", "Snacks", "Bars", "Contoso Wholesale", "1.10", "2.99", 8, 20),
    ("HOM-MUG-001", "Ceramic Mug 350ml", "Home", "Kitchen", None, "2.75", "8.99", 15, 5),
)

SAMPLE_CUSTOMERS = (
    {"first_name": "Maria", "last_name": "Lopez", "email": "maria.lopez@example.com", "phone": "555-0200"},
    {"first_name": "James", "last_name": "Chen", "email": "james.chen@example.com", "phone": "555-0201"},
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create all tables and the default users.

    Users: admin, manager, cashier (password "Password123!").
    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing RetailPOS...")
    db.create_all()
    click.echo("PASS Tables ready")

    for username, email, role, full_name in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP User exists: {username}")
            continue
        create_user(username=username, email=email, password=DEFAULT_PASSWORD, role=role, full_name=full_name)
        click.echo(f"PASS Created user: {username} ({role})")

    click.echo(f"\nDONE Default password for new users: {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(USER_ROLES)), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, email, password, role, full_name):
    """
    Create a new user.

    Password must be 8+ chars with uppercase, lowercase, digit and special char.
    """
    try:
        create_user(username=username, email=email, password=password, role=role, full_name=full_name)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")
    click.echo("="*80 + "\n")


@click.group('catalog')
def catalog_group():
    """Catalog seeding commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert sample suppliers, products and customers."""
    suppliers = {}
    for data in SAMPLE_SUPPLIERS:
        supplier = db.session.query(Supplier).filter_by(name=data["name"]).first()
        if supplier is None:
            supplier = Supplier(**data)
            db.session.add(supplier)
            click.echo(f"PASS Supplier: {data['name']}")
        suppliers[data["name"]] = supplier
    db.session.flush()

    for sku, name, category, subcategory, supplier_name, cost, price, quantity, min_stock in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            click.echo(f"SKIP Product exists: {sku}")
            continue
        db.session.add(Product(
            sku=sku,
            name=name,
            category=category,
            subcategory=subcategory,
            supplier_id=suppliers[supplier_name].id if supplier_name else None,
            cost_price=Decimal(cost),
            selling_price=Decimal(price),
            quantity=quantity,
            min_stock=min_stock,
            variants=[],
            images=[],
        ))
        click.echo(f"PASS Product: {sku} {name}")

    for data in SAMPLE_CUSTOMERS:
        if db.session.query(Customer).filter_by(email=data["email"]).first():
            click.echo(f"SKIP Customer exists: {data['email']}")
            continue
        db.session.add(Customer(tags=[], **data))
        click.echo(f"PASS Customer: {data['first_name']} {data['last_name']}")

    db.session.commit()
    click.echo("DONE Catalog seeded")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
