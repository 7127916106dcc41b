from types import SimpleNamespace

from services.cart_service import pricing


def product(**overrides):
    values = dict(
        id="p1",
        title="Book A",
        price=500.0,
        discounted_price=None,
        ebook_price=None,
        ebook_discounted=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestUnitPrice:
    def test_physical_uses_list_price(self):
        assert pricing.unit_price(product(), is_ebook=False) == 500.0

    def test_physical_prefers_discounted_price(self):
        assert pricing.unit_price(product(discounted_price=450.0), is_ebook=False) == 450.0

    def test_ebook_prefers_ebook_discounted(self):
        p = product(ebook_price=200.0, ebook_discounted=150.0)
        assert pricing.unit_price(p, is_ebook=True) == 150.0

    def test_ebook_falls_back_to_ebook_price(self):
        assert pricing.unit_price(product(ebook_price=200.0), is_ebook=True) == 200.0

    def test_ebook_without_digital_price_uses_list_price(self):
        assert pricing.unit_price(product(discounted_price=450.0), is_ebook=True) == 500.0


class TestTotals:
    def test_subtotal_sums_line_totals(self):
        items = [
            pricing.price_item(product(), 2, False),
            pricing.price_item(product(id="p2", ebook_price=120.0), 1, True),
        ]
        assert items[0].line_total == 1000.0
        assert pricing.subtotal(items) == 1120.0

    def test_shipping_fee_only_with_physical_items(self):
        physical = [pricing.price_item(product(), 1, False)]
        digital = [pricing.price_item(product(ebook_price=99.0), 1, True)]
        assert pricing.shipping_fee(physical) == pricing.SHIPPING_FEE
        assert pricing.shipping_fee(digital) == 0.0
        assert pricing.shipping_fee(physical + digital) == pricing.SHIPPING_FEE

    def test_empty_cart(self):
        assert pricing.subtotal([]) == 0
        assert not pricing.has_physical([])
