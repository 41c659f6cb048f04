"""
Integration tests for back-office status changes.
"""

import pytest

from app.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError, ValidationError
from app.models import Order, OrderStatus, OrderStatusHistory
from app.services.catalog_service import ProductSnapshot
from app.services.email_service import mail
from app.services.order_service import CheckoutDetails, submit_order
from app.services.order_status_service import (
    allowed_transitions, change_order_status, get_order_history, list_orders
)


@pytest.fixture
def submitted_order(session, approved_user, cart_for, product, checkout_data):
    cart = cart_for(approved_user)
    cart.add_product(ProductSnapshot.from_model(product), 1)
    result = submit_order(
        session, approved_user, cart, CheckoutDetails.from_mapping(checkout_data), notify=lambda *args: True
    )
    return session.get(Order, result.order_id)


class TestChangeStatus:

    def test_allowed_transition(self, session, submitted_order, admin_user):
        order = change_order_status(session, submitted_order.id, 'confirmed', admin_user, notify=lambda *a: True)

        assert order.status == OrderStatus.CONFIRMED.value
        history = get_order_history(session, order.id)
        assert [(h.old_status, h.new_status) for h in history] == [(None, 'pending'), ('pending', 'confirmed')]
        assert history[-1].changed_by == admin_user.id
        assert history[-1].changed_by_name == 'Anna Admin'

    def test_notes_are_stored(self, session, submitted_order, admin_user):
        change_order_status(
            session, submitted_order.id, 'cancelled', admin_user, notes='Kunde hat storniert', notify=lambda *a: True
        )

        entry = session.query(OrderStatusHistory).filter_by(new_status='cancelled').one()
        assert entry.notes == 'Kunde hat storniert'

    def test_amounts_are_not_touched(self, session, submitted_order, admin_user):
        total_before = submitted_order.total_amount
        items_before = [(i.product_name, i.total_price) for i in submitted_order.items]

        change_order_status(session, submitted_order.id, 'processing', admin_user, notify=lambda *a: True)
        session.refresh(submitted_order)

        assert submitted_order.total_amount == total_before
        assert [(i.product_name, i.total_price) for i in submitted_order.items] == items_before

    def test_full_lifecycle(self, session, submitted_order, admin_user):
        for status in ('confirmed', 'processing', 'shipped', 'delivered'):
            change_order_status(session, submitted_order.id, status, admin_user, notify=lambda *a: True)

        assert submitted_order.status == 'delivered'
        assert allowed_transitions('delivered') == []
        assert len(get_order_history(session, submitted_order.id)) == 5

    def test_disallowed_transition(self, session, submitted_order, admin_user):
        with pytest.raises(BusinessLogicError) as exc:
            change_order_status(session, submitted_order.id, 'delivered', admin_user, notify=lambda *a: True)

        assert exc.value.status_code == 409
        session.refresh(submitted_order)
        assert submitted_order.status == 'pending'
        assert len(get_order_history(session, submitted_order.id)) == 1

    def test_final_status_cannot_change(self, session, submitted_order, admin_user):
        change_order_status(session, submitted_order.id, 'cancelled', admin_user, notify=lambda *a: True)

        with pytest.raises(BusinessLogicError):
            change_order_status(session, submitted_order.id, 'pending', admin_user, notify=lambda *a: True)

    def test_unknown_status(self, session, submitted_order, admin_user):
        with pytest.raises(ValidationError):
            change_order_status(session, submitted_order.id, 'lost', admin_user)

    def test_customer_cannot_change_status(self, session, submitted_order, approved_user):
        with pytest.raises(UnauthorizedError):
            change_order_status(session, submitted_order.id, 'confirmed', approved_user)

    def test_unknown_order(self, session, admin_user):
        with pytest.raises(NotFoundError):
            change_order_status(session, 999, 'confirmed', admin_user)

    def test_failing_notification_keeps_the_change(self, session, submitted_order, admin_user):
        def broken(*args):
            raise RuntimeError('SMTP down')

        order = change_order_status(session, submitted_order.id, 'confirmed', admin_user, notify=broken)

        assert order.status == 'confirmed'
        assert len(get_order_history(session, order.id)) == 2

    def test_status_mail_is_sent(self, session, submitted_order, admin_user, approved_user):
        with mail.record_messages() as outbox:
            change_order_status(session, submitted_order.id, 'confirmed', admin_user)

        assert len(outbox) == 1
        assert outbox[0].recipients == [approved_user.email]
        assert submitted_order.order_number in outbox[0].subject


class TestListing:

    def test_list_orders_filters_by_status(self, session, submitted_order, admin_user):
        assert [o.id for o in list_orders(session)] == [submitted_order.id]
        assert list_orders(session, status='confirmed') == []

    def test_list_orders_rejects_unknown_status(self, session):
        with pytest.raises(ValidationError):
            list_orders(session, status='lost')

    def test_history_of_unknown_order(self, session):
        with pytest.raises(NotFoundError):
            get_order_history(session, 999)

    def test_allowed_transitions(self):
        assert allowed_transitions('pending') == ['cancelled', 'confirmed', 'processing']
        assert allowed_transitions('shipped') == ['delivered']
