"""Back-office form for discount codes."""
from flask_wtf import FlaskForm
from wtforms import BooleanField, DateTimeField, DecimalField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import Length, NumberRange, Optional, Regexp

from app.models import DiscountType

DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M', '%Y-%m-%d']


class DiscountCodeForm(FlaskForm):
    """Create or edit a discount code. An empty code gets a random one."""

    code = StringField(
        'Code',
        validators=[
            Optional(),
            Length(max=64),
            Regexp(r'^[A-Za-z0-9_-]+$', message='Nur Buchstaben, Ziffern, - und _')
        ],
        render_kw={'placeholder': 'leer lassen für automatischen Code'}
    )

    description = TextAreaField('Beschreibung', validators=[Optional()])

    discount_type = SelectField(
        'Rabatttyp',
        choices=[
            (DiscountType.PERCENTAGE.value, 'Prozent'),
            (DiscountType.FIXED.value, 'Festbetrag'),
        ],
        validators=[Optional()],
        default=DiscountType.PERCENTAGE.value
    )

    discount_value = DecimalField(
        'Wert',
        validators=[Optional(), NumberRange(min=0, message='Darf nicht negativ sein')],
        places=2,
        render_kw={'step': '0.01', 'min': '0'}
    )

    min_order_value = DecimalField(
        'Mindestbestellwert (netto)',
        validators=[Optional(), NumberRange(min=0, message='Darf nicht negativ sein')],
        places=2
    )

    max_uses = IntegerField(
        'Maximale Einlösungen',
        validators=[Optional(), NumberRange(min=1, message='Muss mindestens 1 sein')]
    )

    valid_from = DateTimeField('Gültig ab', validators=[Optional()], format=DATETIME_FORMATS)
    valid_until = DateTimeField('Gültig bis', validators=[Optional()], format=DATETIME_FORMATS)
    is_active = BooleanField('Aktiv', default=True)
