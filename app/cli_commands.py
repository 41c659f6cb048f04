"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask create-discount-code: Create a discount code
"""

import click
from decimal import Decimal
from datetime import datetime
from app.database import get_session, create_all
from app.exceptions import PortalError
from app.models import DiscountType
from app.services import discount_service


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables that do not exist yet."""
        create_all()
        click.echo(click.style('✅ Datenbanktabellen angelegt.', fg='green'))

    @app.cli.command('create-discount-code')
    @click.option('--code', default='', help='Code (leer = zufälliger Code)')
    @click.option('--type', 'discount_type', type=click.Choice([t.value for t in DiscountType]),
                  default=DiscountType.PERCENTAGE.value, show_default=True)
    @click.option('--value', 'discount_value', required=True, type=Decimal, help='Prozentwert oder Festbetrag')
    @click.option('--min-order-value', type=Decimal, default=Decimal('0'), show_default=True)
    @click.option('--max-uses', type=int, default=None, help='Maximale Einlösungen (leer = unbegrenzt)')
    @click.option('--valid-until', type=click.DateTime(formats=['%Y-%m-%d']), default=None)
    @click.option('--description', default=None)
    def create_discount_code(code, discount_type, discount_value, min_order_value, max_uses, valid_until, description):
        """Create a discount code for the portal."""
        data = {
            'code': code,
            'discount_type': discount_type,
            'discount_value': discount_value,
            'min_order_value': min_order_value,
            'max_uses': max_uses,
            'description': description,
        }
        if valid_until:
            data['valid_until'] = datetime.combine(valid_until.date(), datetime.max.time())

        try:
            discount_code = discount_service.create_discount_code(get_session(), data)
        except PortalError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            errors = (e.payload or {}).get('errors') or {}
            for field, messages in errors.items():
                click.echo(f'   {field}: {", ".join(messages)}')
            raise SystemExit(1)

        click.echo(click.style('\n✅ Rabattcode angelegt!', fg='green', bold=True))
        click.echo(f'   Code: {discount_code.code}')
        click.echo(f'   ID: {discount_code.id}')
