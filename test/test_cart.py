from pathlib import Path

from conftest import make_app, run, seed_products

from mpos.domain.models import Product, Variant


def _catalog():
    plain = Product(id="P", name="CD", price=5.0, quantity=10)
    shirt = Product(
        id="Q",
        name="Shirt",
        price=20.0,
        quantity=5,
        has_variants=True,
        variants=(Variant("S", 3), Variant("L", 2)),
    )
    return plain, shirt


def _setup(tmp_path: Path):
    app = make_app(tmp_path)
    seed_products(app, *_catalog())
    return app


def test_add_to_cart_creates_line(tmp_path: Path):
    app = _setup(tmp_path)

    cart = run(app.cart.add_to_cart("P", 3))

    assert len(cart) == 1
    assert cart[0].cart_item_key == "P"
    assert cart[0].quantity == 3
    assert cart[0].variant_name is None
    assert run(app.cart.get_cart()) == cart


def test_add_variant_uses_composite_key(tmp_path: Path):
    app = _setup(tmp_path)

    cart = run(app.cart.add_to_cart("Q", 2, "S"))

    assert cart[0].cart_item_key == "Q_S"
    assert cart[0].variant_name == "S"


def test_add_merges_quantities_for_same_key(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 2))

    cart = run(app.cart.add_to_cart("P", 3))

    assert len(cart) == 1
    assert cart[0].quantity == 5


def test_add_rejects_quantity_over_stock_and_leaves_cart_unchanged(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 4))
    before = run(app.cart.get_cart())

    assert run(app.cart.add_to_cart("P", 15)) is None
    assert run(app.cart.get_cart()) == before


def test_add_rejects_merge_that_exceeds_stock(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("Q", 2, "S"))

    assert run(app.cart.add_to_cart("Q", 2, "S")) is None
    assert run(app.cart.get_cart())[0].quantity == 2


def test_add_rejects_unknown_product_or_variant(tmp_path: Path):
    app = _setup(tmp_path)

    assert run(app.cart.add_to_cart("missing", 1)) is None
    assert run(app.cart.add_to_cart("Q", 1, "XXL")) is None
    assert run(app.cart.add_to_cart("P", 0)) is None
    assert run(app.cart.get_cart()) == []


def test_lines_without_a_tracked_variant_check_product_quantity(tmp_path: Path):
    app = _setup(tmp_path)

    # P has no variants, so the name is carried on the line but P's quantity is checked
    assert run(app.cart.add_to_cart("P", 11, "S")) is None
    assert run(app.cart.add_to_cart("P", 10, "S"))[0].cart_item_key == "P_S"

    # Q without a variant is checked against its total of 5
    assert run(app.cart.add_to_cart("Q", 6)) is None
    cart = run(app.cart.add_to_cart("Q", 5))
    assert [(line.cart_item_key, line.quantity) for line in cart] == [("P_S", 10), ("Q", 5)]


def test_update_quantity_does_not_recheck_stock(tmp_path: Path):
    # Known gap: only add_to_cart validates against stock.
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))

    cart = run(app.cart.update_cart_item_quantity("P", 50))

    assert cart[0].quantity == 50


def test_update_quantity_to_zero_removes_line(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))

    assert run(app.cart.update_cart_item_quantity("P", 0)) == []
    assert run(app.cart.update_cart_item_quantity("nope", 2)) is None


def test_remove_and_clear(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 1))
    run(app.cart.add_to_cart("Q", 1, "L"))

    assert len(run(app.cart.remove_from_cart("absent"))) == 2
    assert [line.cart_item_key for line in run(app.cart.remove_from_cart("P"))] == ["Q_L"]
    assert run(app.cart.clear_cart()) == []
    assert run(app.cart.verify_cart_empty()) == (True, 0)


def test_cart_writes_keep_app_state_flags_in_sync(tmp_path: Path):
    app = _setup(tmp_path)

    run(app.cart.add_to_cart("P", 1))
    run(app.cart.add_to_cart("Q", 1, "L"))
    state = run(app.settings.get_app_state())
    assert state["hasCartItems"] is True
    assert state["cartItemsCount"] == 2

    run(app.cart.clear_cart())
    state = run(app.settings.get_app_state())
    assert state["hasCartItems"] is False
    assert state["cartItemsCount"] == 0


def test_cart_total_skips_dangling_lines(tmp_path: Path):
    app = _setup(tmp_path)
    run(app.cart.add_to_cart("P", 2))
    run(app.cart.add_to_cart("Q", 1, "S"))
    run(app.catalog.delete_product("Q"))

    assert run(app.cart.get_cart_total()) == 10.0
