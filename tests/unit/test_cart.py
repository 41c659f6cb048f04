"""
Unit tests for the cart aggregate (no database).
"""

from decimal import Decimal

from app.services.cart_service import Cart, AppliedDiscount
from app.services.catalog_service import CatalogSnapshot


class TestAddProduct:
    """Tests for adding product lines."""

    def test_add_inserts_line_with_snapshot_values(self, make_product):
        cart = Cart()
        assert cart.add_product(make_product(id=7, name='Bremsscheibe', price='99.90', discount='5'), 2) is True

        line = cart.lines[7]
        assert line.name == 'Bremsscheibe'
        assert line.unit_net_price == Decimal('99.90')
        assert line.discount_percentage == Decimal('5')
        assert line.quantity == 2

    def test_add_existing_product_increments_quantity(self, make_product):
        cart = Cart()
        product = make_product(id=1)
        cart.add_product(product, 1)
        cart.add_product(product, 3)

        assert len(cart.lines) == 1
        assert cart.lines[1].quantity == 4

    def test_add_is_clamped_to_known_stock(self, make_product):
        cart = Cart()
        product = make_product(id=1, stock=3)
        cart.add_product(product, 2)
        cart.add_product(product, 5)

        assert cart.lines[1].quantity == 3

    def test_zero_stock_means_available_on_request(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1, stock=0), 250)

        assert cart.lines[1].quantity == 250

    def test_invalid_quantity_is_rejected(self, make_product):
        cart = Cart()
        product = make_product(id=1)

        assert cart.add_product(product, 0) is False
        assert cart.add_product(product, -2) is False
        assert cart.add_product(product, True) is False
        assert cart.is_empty


class TestSetQuantity:
    """Tests for changing a line's quantity."""

    def test_set_quantity(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1), 1)

        assert cart.set_quantity(1, 4) is True
        assert cart.lines[1].quantity == 4

    def test_quantity_below_one_is_rejected(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1), 2)

        assert cart.set_quantity(1, 0) is False
        assert cart.lines[1].quantity == 2

    def test_set_quantity_clamps_to_stock(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1), 1)

        cart.set_quantity(1, 10, stock=4)
        assert cart.lines[1].quantity == 4

    def test_unknown_line(self):
        assert Cart().set_quantity(99, 1) is False


class TestRemove:
    """Tests for removing lines."""

    def test_remove_product(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1), 1)
        cart.add_product(make_product(id=2), 1)

        cart.remove_product(1)
        assert list(cart.lines) == [2]

    def test_remove_missing_line_is_noop(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1), 1)

        cart.remove_product(42)
        cart.remove_vehicle(42)

        assert list(cart.lines) == [1]


class TestVehicles:
    """Tests for vehicle lines."""

    def test_add_vehicle_once(self, make_vehicle):
        cart = Cart()
        vehicle = make_vehicle(id=3)

        assert cart.add_vehicle(vehicle) is True
        assert cart.add_vehicle(vehicle) is False
        assert len(cart.vehicles) == 1
        assert cart.vehicles[3].quantity == 1
        assert cart.vehicles[3].name == 'VW Golf'

    def test_sold_or_reserved_vehicle_is_refused(self, make_vehicle):
        cart = Cart()

        assert cart.add_vehicle(make_vehicle(id=1, is_sold=True)) is False
        assert cart.add_vehicle(make_vehicle(id=2, is_reserved=True)) is False
        assert cart.is_empty

    def test_total_items_counts_vehicles_once(self, make_product, make_vehicle):
        cart = Cart()
        cart.add_product(make_product(id=1), 3)
        cart.add_vehicle(make_vehicle(id=1))

        assert cart.total_items == 4


class TestReconcile:
    """Tests for reconciling the cart against the catalog."""

    def test_deleted_product_is_removed_and_others_untouched(self, make_product):
        cart = Cart()
        keep = make_product(id=1, name='Bleibt', price='10')
        gone = make_product(id=2, name='Gelöscht', price='20')
        cart.add_product(keep, 2)
        cart.add_product(gone, 1)

        # Price changed in the catalog in the meantime
        catalog = CatalogSnapshot(products={1: make_product(id=1, name='Bleibt', price='15')})
        removed = cart.reconcile(catalog)

        assert removed == ['Gelöscht']
        assert list(cart.lines) == [1]
        assert cart.lines[1].quantity == 2
        assert cart.lines[1].unit_net_price == Decimal('10')

    def test_inactive_product_is_removed(self, make_product):
        cart = Cart()
        cart.add_product(make_product(id=1, name='Alt'), 1)

        removed = cart.reconcile(CatalogSnapshot(products={1: make_product(id=1, is_active=False)}))

        assert removed == ['Alt']
        assert cart.is_empty

    def test_sold_reserved_or_deleted_vehicle_is_removed(self, make_vehicle):
        cart = Cart()
        cart.add_vehicle(make_vehicle(id=1, brand='VW', model='Golf'))
        cart.add_vehicle(make_vehicle(id=2, brand='BMW', model='320d'))
        cart.add_vehicle(make_vehicle(id=3, brand='Audi', model='A4'))
        cart.add_vehicle(make_vehicle(id=4, brand='Opel', model='Astra'))

        catalog = CatalogSnapshot(vehicles={
            1: make_vehicle(id=1, is_sold=True),
            3: make_vehicle(id=3, brand='Audi', model='A4'),
            4: make_vehicle(id=4, brand='Opel', model='Astra', is_reserved=True),
        })
        removed = cart.reconcile(catalog)

        assert sorted(removed) == ['BMW 320d', 'Opel Astra', 'VW Golf']
        assert list(cart.vehicles) == [3]


class TestPersistence:
    """Tests for the CartStore port."""

    def test_every_mutation_is_saved(self, memory_store, make_product):
        cart = Cart.load(memory_store, '1')
        cart.add_product(make_product(id=1), 1)
        cart.set_quantity(1, 2)
        cart.remove_product(1)

        assert memory_store.saves == 3

    def test_rejected_mutation_is_not_saved(self, memory_store, make_product):
        cart = Cart.load(memory_store, '1')
        cart.add_product(make_product(id=1), 0)
        cart.remove_product(5)

        assert memory_store.saves == 0

    def test_roundtrip_through_store(self, memory_store, make_product, make_vehicle):
        cart = Cart.load(memory_store, '1')
        cart.add_product(make_product(id=1, price='19.99', discount='2.5'), 3)
        cart.add_vehicle(make_vehicle(id=4, margin=True))
        cart.apply_discount(AppliedDiscount(id=9, code='SAVE10', type='percentage', value=Decimal('10')))

        restored = Cart.load(memory_store, '1')

        assert restored.lines[1].unit_net_price == Decimal('19.99')
        assert restored.lines[1].discount_percentage == Decimal('2.5')
        assert restored.lines[1].quantity == 3
        assert restored.vehicles[4].vat_margin_scheme is True
        assert restored.applied_discount.code == 'SAVE10'

    def test_carts_are_scoped_per_key(self, memory_store, make_product):
        Cart.load(memory_store, '1').add_product(make_product(id=1), 1)

        assert Cart.load(memory_store, '2').is_empty

    def test_clear_empties_everything(self, memory_store, make_product, make_vehicle):
        cart = Cart.load(memory_store, '1')
        cart.add_product(make_product(id=1), 1)
        cart.add_vehicle(make_vehicle(id=1))
        cart.apply_discount(AppliedDiscount(id=1, code='X', type='fixed', value=Decimal('5')))

        cart.clear()

        restored = Cart.load(memory_store, '1')
        assert restored.is_empty
        assert restored.applied_discount is None

    def test_remove_discount(self, memory_store):
        cart = Cart.load(memory_store, '1')
        cart.apply_discount(AppliedDiscount(id=1, code='X', type='fixed', value=Decimal('5')))

        cart.remove_discount()

        assert Cart.load(memory_store, '1').applied_discount is None
