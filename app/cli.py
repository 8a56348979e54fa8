from datetime import datetime, timedelta
from decimal import Decimal

import click
from flask.cli import with_appcontext
from app.extensions import db
from app.models import User, Location, Product, Lot


def init_cli(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_locations_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(seed_demo_command)


@click.command("init-db")
@click.option('--drop', is_flag=True, help='Drop existing tables first')
@with_appcontext
def init_db_command(drop):
    """Initialize database tables"""
    if drop:
        db.drop_all()
    db.create_all()
    click.echo("Database tables created.")


@click.command("seed-locations")
@with_appcontext
def seed_locations_command():
    """Seed predefined warehouses and showrooms"""
    for location in Location.get_predefined_locations():
        click.echo(f"Location ready: {location.name} ({location.type})")


@click.command("create-user")
@click.argument('username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--email', default=None, help='Defaults to <username>@example.com')
@click.option('--role', type=click.Choice(User.ROLES), default='investor', show_default=True)
@click.option('--location', 'location_names', multiple=True,
              help='Assign a location by name; repeat for several')
@with_appcontext
def create_user_command(username, password, email, role, location_names):
    """Create a user, optionally restricted to some locations"""
    if User.query.filter_by(username=username).first():
        click.echo(f"User '{username}' already exists")
        return

    locations = []
    for name in location_names:
        location = Location.query.filter_by(name=name).first()
        if location is None:
            raise click.BadParameter(f"Unknown location: {name}", param_hint='--location')
        locations.append(location)

    user = User(
        username=username,
        email=email or f'{username}@example.com',
        role=role
    )
    user.set_password(password)
    user.locations = locations
    db.session.add(user)
    try:
        db.session.commit()
        click.echo(f"User '{username}' has been created with role {role}")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error creating user: {str(e)}", err=True)


DEMO_PRODUCTS = [
    # code, name, category, unit, minimum stock, lots as (quantity, purchase, selling)
    ('CTN-001', 'Cotton Poplin White', 'Cotton', 'meter', 100, [(250, 180, 240), (120, 185, 245)]),
    ('SLK-014', 'Raw Silk Maroon', 'Silk', 'yard', 40, [(60, 950, 1250)]),
    ('DNM-210', 'Denim 12oz Indigo', 'Denim', 'meter', 150, [(80, 320, 420), (0, 310, 410)]),
    ('LIN-005', 'Linen Blend Beige', 'Linen', 'roll', 5, [(12, 5400, 6900)]),
]


@click.command("seed-demo")
@with_appcontext
def seed_demo_command():
    """Seed demo products with a few lots each"""
    locations = Location.get_predefined_locations()
    warehouse = next(loc for loc in locations if loc.type == 'warehouse')
    received = datetime.utcnow() - timedelta(days=30)

    for code, name, category, unit, minimum, lots in DEMO_PRODUCTS:
        if Product.query.filter_by(product_code=code).first():
            click.echo(f"Skipping existing product {code}")
            continue

        product = Product(
            name=name,
            product_code=code,
            category=category,
            unit=unit,
            minimum_stock=minimum,
            location=warehouse
        )
        db.session.add(product)
        db.session.flush()

        for number, (quantity, purchase, selling) in enumerate(lots, start=1):
            db.session.add(Lot(
                product_id=product.id,
                location_id=warehouse.id,
                lot_number=number,
                quantity=Decimal(quantity),
                purchase_price=Decimal(purchase),
                selling_price=Decimal(selling),
                received_date=received,
                status='active' if quantity else 'depleted'
            ))
        click.echo(f"Added {code} - {name} with {len(lots)} lots")

    try:
        db.session.commit()
        click.echo("Demo data seeded.")
    except Exception as e:
        db.session.rollback()
        click.echo(f"Error seeding demo data: {str(e)}", err=True)
