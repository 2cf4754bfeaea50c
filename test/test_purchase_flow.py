from pathlib import Path

import pytest

from conftest import make_app, run, seed_products

from mpos.domain.models import EmailConfig, PaymentMethod, Product, Variant
from mpos.services.purchase_service import EMPTY_CART_MESSAGE


def _catalog():
    return [
        Product(id="P", name="CD", price=5.0, quantity=10),
        Product(
            id="Q",
            name="Shirt",
            price=20.0,
            quantity=5,
            has_variants=True,
            variants=(Variant("S", 3), Variant("L", 2)),
        ),
        Product(id="R", name="Poster", price=2.5, quantity=8),
    ]


def _setup(tmp_path: Path, **kw):
    app = make_app(tmp_path, **kw)
    seed_products(app, *_catalog())
    return app


def _by_id(app):
    return {p.id: p for p in run(app.catalog.list_products())}


def test_purchase_plain_product(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 3))

    result = run(app.purchases.process_purchase("efectivo"))

    assert result.success is True
    assert result.empty_cart is True
    assert result.sale.total_amount == 15.0
    assert result.sale.payment_method is PaymentMethod.CASH
    assert _by_id(app)["P"].quantity == 7
    assert run(app.cart.get_cart()) == []
    assert run(app.sales.list_sales()) == [result.sale]


def test_purchase_variant_recomputes_product_total(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("Q", 2, "S"))

    result = run(app.purchases.process_purchase("tarjeta"))

    assert result.success is True
    q = _by_id(app)["Q"]
    assert q.find_variant("S").quantity == 1
    assert q.find_variant("L").quantity == 2
    assert q.quantity == 3
    assert result.sale.items[0].variant == "S"


def test_sale_snapshots_name_and_price(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 2))
    run(app.cart.add_to_cart("R", 4))

    sale = run(app.purchases.process_purchase()).sale
    run(app.catalog.update_product("P", name="CD Deluxe", price=99.0))

    stored = run(app.sales.get_sale(sale.id))
    assert stored.items[0].product_name == "CD"
    assert stored.items[0].unit_price == 5.0
    for it in stored.items:
        assert it.total_price == it.unit_price * it.quantity
    assert stored.total_amount == sum(it.total_price for it in stored.items) == 20.0


def test_untouched_products_stay_unchanged(tmp_path: Path):
    app = _setup(tmp_path)
    before = _by_id(app)
    run(app.cart.add_to_cart("P", 1))

    run(app.purchases.process_purchase())

    after = _by_id(app)
    assert after["Q"] == before["Q"]
    assert after["R"] == before["R"]


def test_empty_cart_fails_without_mutation(tmp_path: Path):
    app = _setup(tmp_path)
    before = run(app.catalog.list_products())

    result = run(app.purchases.process_purchase())

    assert result.success is False
    assert result.message == EMPTY_CART_MESSAGE
    assert run(app.catalog.list_products()) == before
    assert run(app.sales.list_sales()) == []


def test_unknown_payment_method_is_rejected(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))

    result = run(app.purchases.process_purchase("bitcoin"))

    assert result.success is False
    assert len(run(app.cart.get_cart())) == 1


def test_deleted_product_fails_whole_purchase(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))
    run(app.cart.add_to_cart("R", 1))
    run(app.catalog.delete_product("R"))
    before = run(app.catalog.list_products())

    result = run(app.purchases.process_purchase())

    assert result.success is False
    assert "Product not found" in result.message
    assert run(app.catalog.list_products()) == before
    assert len(run(app.cart.get_cart())) == 2
    assert run(app.sales.list_sales()) == []


def test_stock_drop_after_add_fails_whole_purchase(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 2))
    run(app.cart.add_to_cart("Q", 3, "S"))
    run(app.catalog.update_product("Q", variants=[("S", 1), ("L", 2)]))

    result = run(app.purchases.process_purchase())

    assert result.success is False
    assert "Not enough stock for Shirt - S" in result.message
    assert _by_id(app)["P"].quantity == 10


def test_overlong_quantity_from_update_is_caught_at_checkout(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))
    run(app.cart.update_cart_item_quantity("P", 11))

    result = run(app.purchases.process_purchase())

    assert result.success is False
    assert _by_id(app)["P"].quantity == 10


def test_variant_invariant_holds_after_purchases(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("Q", 1, "S"))
    run(app.cart.add_to_cart("Q", 2, "L"))

    assert run(app.purchases.process_purchase()).success

    for p in run(app.catalog.list_products()):
        if p.has_variants:
            assert p.quantity == sum(v.quantity for v in p.variants)
    assert _by_id(app)["Q"].quantity == 2


def test_purchase_clears_cart_flags(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))

    run(app.purchases.process_purchase())

    state = run(app.settings.get_app_state())
    assert state["hasCartItems"] is False
    assert state["cartItemsCount"] == 0


@pytest.mark.parametrize("auto_send, expected_calls", [(True, 1), (False, 0)])
def test_receipt_hook_follows_email_config(tmp_path: Path, auto_send, expected_calls):
    sent = []
    app = _setup(tmp_path, receipt_hook=lambda sale, to: sent.append((sale.id, to)))
    run(app.settings.save_email_config(EmailConfig("shop@example.com", True, auto_send, "mailto")))
    run(app.cart.add_to_cart("P", 1))

    result = run(app.purchases.process_purchase())

    assert result.success is True
    assert len(sent) == expected_calls
    if sent:
        assert sent[0] == (result.sale.id, "shop@example.com")


def test_failing_receipt_hook_does_not_fail_sale(tmp_path: Path):
    async def boom(sale, to):
        raise RuntimeError("smtp down")

    app = _setup(tmp_path, receipt_hook=boom)
    run(app.settings.save_email_config(EmailConfig("shop@example.com", True, True, "mailto")))
    run(app.cart.add_to_cart("P", 1))

    assert run(app.purchases.process_purchase()).success is True


def test_variant_line_on_product_without_variants_uses_product_stock(tmp_path: Path):
    app = _setup(tmp_path)
    # variants survive when a product stops tracking them
    run(app.catalog.update_product("Q", has_variants=False))
    run(app.catalog.update_product("Q", quantity=1))

    assert run(app.cart.add_to_cart("Q", 3, "S")) is None
    assert run(app.cart.add_to_cart("Q", 1, "S")) is not None

    result = run(app.purchases.process_purchase())

    assert result.success is True
    q = _by_id(app)["Q"]
    assert q.quantity == 0
    assert q.find_variant("S").quantity == 3


def test_lines_sharing_product_quantity_are_validated_together(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.catalog.update_product("Q", has_variants=False))
    run(app.catalog.update_product("Q", quantity=1))
    run(app.cart.add_to_cart("Q", 1, "S"))
    run(app.cart.add_to_cart("Q", 1))

    result = run(app.purchases.process_purchase())

    assert result.success is False
    assert "Not enough stock for Shirt" in result.message
    assert _by_id(app)["Q"].quantity == 1


def test_variantless_line_on_variant_product_leaves_stock_unchanged(tmp_path: Path):
    # Known gap: the line is checked against the product total, but no variant
    # is decremented, so the re-derived total does not move either.
    app = _setup(tmp_path)

    cart = run(app.cart.add_to_cart("Q", 2))
    assert [(line.cart_item_key, line.quantity) for line in cart] == [("Q", 2)]
    assert run(app.cart.add_to_cart("Q", 4)) is None

    result = run(app.purchases.process_purchase())

    assert result.success is True
    assert result.sale.items[0].variant is None
    q = _by_id(app)["Q"]
    assert q.quantity == 5
    assert q.quantity == sum(v.quantity for v in q.variants)
