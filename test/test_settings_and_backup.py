from pathlib import Path

from conftest import make_app, run, seed_products

from mpos.domain.models import EmailConfig, Product


def test_email_config_defaults_when_missing_or_malformed(tmp_path: Path):
    app = make_app(tmp_path)
    assert run(app.settings.get_email_config()) == EmailConfig()

    run(app.repos.store.set_item("email_config", "not json"))
    assert run(app.settings.get_email_config()) == EmailConfig()


def test_email_config_roundtrip_and_provider_check(tmp_path: Path):
    app = make_app(tmp_path)
    cfg = EmailConfig("shop@example.com", True, True, "gmail")

    assert run(app.settings.save_email_config(cfg)) is True
    assert run(app.settings.get_email_config()) == cfg
    assert run(app.settings.should_auto_send_receipts()) is True

    assert run(app.settings.save_email_config(EmailConfig(email_service_provider="pigeon"))) is False
    assert run(app.settings.get_email_config()) == cfg


def test_app_state_merges_and_stamps_last_saved(tmp_path: Path):
    app = make_app(tmp_path)

    run(app.settings.mark_app_started())
    run(app.settings.save_app_state(productsCount=3))
    state = run(app.settings.get_app_state())

    assert state["appStarted"] is True
    assert state["appState"] == "active"
    assert state["productsCount"] == 3
    assert "lastSaved" in state

    run(app.settings.mark_app_closed())
    assert run(app.settings.get_app_state())["appStarted"] is False


def test_backup_and_restore(tmp_path: Path):
    app = make_app(tmp_path)
    seed_products(app, Product(id="P", name="CD", price=5.0, quantity=10))
    run(app.cart.add_to_cart("P", 2))
    sale = run(app.purchases.process_purchase()).sale
    run(app.settings.save_email_config(EmailConfig("a@b.c", True, False, "mailto")))

    backup = run(app.backup.create_backup())
    assert backup["version"] == "1.0.0"
    assert run(app.backup.latest_backup()) == backup

    run(app.cart.add_to_cart("P", 1))
    run(app.catalog.delete_product("P"))
    run(app.repos.sales.save_all([]))

    assert run(app.backup.restore_from_backup(backup)) is True
    assert run(app.catalog.get_product("P")).quantity == 8
    assert run(app.sales.list_sales()) == [sale]
    assert run(app.cart.get_cart()) == []
    assert run(app.settings.get_email_config()).default_email == "a@b.c"
    assert run(app.settings.get_app_state())["cartItemsCount"] == 0


def test_restore_rejects_invalid_payload(tmp_path: Path):
    app = make_app(tmp_path)
    seed_products(app, Product(id="P", name="CD", price=5.0, quantity=10))

    assert run(app.backup.restore_from_backup("nope")) is False
    assert run(app.backup.restore_from_backup({"products": [{"id": "x"}]})) is False
    assert len(run(app.catalog.list_products())) == 1
