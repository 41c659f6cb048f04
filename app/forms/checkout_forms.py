"""
Checkout form (billing/shipping data of a quote request).
The order service re-validates everything server side.
"""
from flask_wtf import FlaskForm
from wtforms import BooleanField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, ValidationError


def full_name(form, field):
    """First and last name: at least two words."""
    if field.data and len(field.data.split()) < 2:
        raise ValidationError('Bitte Vor- und Nachnamen angeben')


class CheckoutForm(FlaskForm):
    """Billing address, optional separate shipping address and notes."""

    customer_name = StringField(
        'Name',
        validators=[DataRequired(message='Pflichtfeld'), Length(max=200), full_name]
    )
    company_name = StringField('Firma', validators=[Optional(), Length(max=200)])
    phone = StringField('Telefon', validators=[Optional(), Length(max=50)])
    billing_address = StringField('Straße und Hausnummer', validators=[DataRequired(message='Pflichtfeld')])
    billing_city = StringField('Ort', validators=[DataRequired(message='Pflichtfeld'), Length(max=120)])
    billing_postal_code = StringField('PLZ', validators=[DataRequired(message='Pflichtfeld'), Length(max=20)])
    billing_country = StringField('Land', validators=[Optional(), Length(max=80)], default='Deutschland')

    use_different_shipping = BooleanField('Abweichende Lieferadresse')
    shipping_customer_name = StringField('Name (Lieferung)', validators=[Optional(), Length(max=200), full_name])
    shipping_company_name = StringField('Firma (Lieferung)', validators=[Optional(), Length(max=200)])
    shipping_phone = StringField('Telefon (Lieferung)', validators=[Optional(), Length(max=50)])
    shipping_address = StringField('Straße und Hausnummer (Lieferung)', validators=[Optional()])
    shipping_city = StringField('Ort (Lieferung)', validators=[Optional(), Length(max=120)])
    shipping_postal_code = StringField('PLZ (Lieferung)', validators=[Optional(), Length(max=20)])
    shipping_country = StringField('Land (Lieferung)', validators=[Optional(), Length(max=80)])

    notes = TextAreaField(
        'Anmerkungen',
        validators=[Optional(), Length(max=2000)],
        render_kw={'rows': 3, 'placeholder': 'Anmerkungen zu Ihrer Anfrage (optional)'}
    )

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators=extra_validators):
            return False

        if self.use_different_shipping.data:
            missing = False
            for field in (self.shipping_customer_name, self.shipping_address,
                          self.shipping_city, self.shipping_postal_code):
                if not field.data:
                    field.errors.append('Pflichtfeld')
                    missing = True
            if missing:
                return False
        return True
