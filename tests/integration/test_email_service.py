"""
Tests for the notification mails.
"""

from decimal import Decimal

from app.services.email_service import mail, send_order_created_email, send_order_status_email


def test_order_created_mail_escapes_customer_input(app):
    items = [{
        'product_name': '<script>alert(1)</script>',
        'quantity': 1,
        'unit_price': Decimal('10.00'),
        'total_price': Decimal('10.00'),
    }]
    totals = {
        'net_total': Decimal('10.00'),
        'discount_amount': Decimal('0.00'),
        'tax_total': Decimal('1.90'),
        'gross_total': Decimal('11.90'),
    }

    with mail.record_messages() as outbox:
        assert send_order_created_email('kunde@test.de', '<b>Max</b> & Co', 'ANF-1', items, totals) is True

    html = outbox[0].html
    assert '<script>' not in html
    assert '&lt;script&gt;alert(1)&lt;/script&gt;' in html
    assert 'Hallo &lt;b&gt;Max&lt;/b&gt; &amp; Co,' in html
    assert 'Hallo <b>Max</b> & Co,' in outbox[0].body
    assert '11,90 €' in html


def test_status_mail_escapes_customer_name(app):
    with mail.record_messages() as outbox:
        assert send_order_status_email('kunde@test.de', '<i>Erika</i> Muster', 'ANF-2', 'shipped') is True

    assert '&lt;i&gt;Erika&lt;/i&gt;' in outbox[0].html
    assert outbox[0].subject == 'Versandbestätigung - ANF-2'


def test_pending_status_sends_nothing(app):
    with mail.record_messages() as outbox:
        assert send_order_status_email('kunde@test.de', 'Erika Muster', 'ANF-3', 'pending') is True

    assert outbox == []


def test_missing_recipient(app):
    assert send_order_status_email(None, 'Erika Muster', 'ANF-4', 'shipped') is False
