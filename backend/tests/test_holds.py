# Overview: Pytest coverage for held sales and the terminal session that holds and resumes them.

import json
from decimal import Decimal

import pytest

from tillpoint.errors import EmptyCart, EntityNotFound, HoldConflict, PersistenceFailure, ValidationError
from tillpoint.extensions import db
from tillpoint.models import Product, Sale
from tillpoint.services.cart_service import Cart
from tillpoint.services.hold_service import HoldStore
from tillpoint.services.pricing_service import PricingMode
from tillpoint.services.terminal_service import get_terminal, reset_terminals


@pytest.fixture
def store(app):
    return HoldStore.for_app()


class TestHoldStore:
    def test_hold_snapshots_and_clears(self, store, product, make_product, stock_of):
        other = make_product(middle_man_price="1300")
        cart = Cart(PricingMode.MIDDLE_MAN)
        cart.add_line(product)
        cart.add_line(product)
        cart.add_line(other)
        cart.negotiate_line(1, Decimal("1250"), 1)
        before = [(l.product_id, l.quantity, l.price, l.preferred_price) for l in cart.lines]

        held = store.hold(cart, customer_label="Table 4", note="back in 5")
        assert cart.is_empty
        assert len(held.id) == 12
        assert held.mode == "Middle Man"

        restored = store.restore_cart(store.get(held.id))
        after = [(l.product_id, l.quantity, l.price, l.preferred_price) for l in restored.lines]
        assert after == before
        assert restored.mode is PricingMode.MIDDLE_MAN
        assert stock_of(product.id) == 10

    def test_list_survives_new_store_instance(self, app, store, product):
        cart = Cart()
        cart.add_line(product)
        held = store.hold(cart)
        assert [h.id for h in HoldStore(store.path).list()] == [held.id]
        with open(store.path, encoding="utf-8") as fh:
            assert json.load(fh)[0]["items"][0]["product_id"] == product.id

    def test_discard(self, store, product):
        cart = Cart()
        cart.add_line(product)
        held = store.hold(cart)
        store.discard(held.id)
        assert store.list() == []
        with pytest.raises(EntityNotFound):
            store.discard(held.id)

    def test_missing_product_dropped_on_restore(self, store, product, make_product, db_session):
        other = make_product()
        cart = Cart()
        cart.add_line(product)
        cart.add_line(other)
        held = store.hold(cart)
        db_session.delete(db_session.get(Product, other.id))
        db_session.commit()

        restored = store.restore_cart(held)
        assert [l.product_id for l in restored.lines] == [product.id]

    def test_corrupt_file(self, store):
        with open(store.path, "w", encoding="utf-8") as fh:
            fh.write("{not json")
        with pytest.raises(PersistenceFailure):
            store.list()

    @pytest.mark.parametrize("content", [{}, [{"mode": "Retail"}], ["abc"], [[1, 2]]])
    def test_wrong_shape_file(self, store, content):
        with open(store.path, "w", encoding="utf-8") as fh:
            json.dump(content, fh)
        with pytest.raises(PersistenceFailure):
            store.list()


class TestTerminalSession:
    def test_resume_into_empty_cart_opens_checkout(self, app, product):
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        terminal.add_to_cart(product.id)
        held = terminal.hold(customer_label="Walk-in")
        assert terminal.cart.is_empty

        terminal.resume(held.id)
        assert terminal.resumed_hold_id == held.id
        assert terminal.draft is not None
        assert terminal.draft.amount_paid == Decimal("3000")
        assert terminal.draft.customer_name == "Walk-in"

    def test_resume_over_non_empty_cart_needs_confirmation(self, app, product, make_product):
        other = make_product()
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        held = terminal.hold()
        terminal.add_to_cart(other.id)

        with pytest.raises(HoldConflict):
            terminal.resume(held.id)
        assert terminal.cart.lines[0].product_id == other.id

        terminal.resume(held.id, confirm_discard=True)
        assert [l.product_id for l in terminal.cart.lines] == [product.id]

    def test_commit_after_resume_discards_hold(self, app, product, stock_of):
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        held = terminal.hold()
        terminal.resume(held.id)

        sale = terminal.commit("alice")
        assert sale.from_held_sale is True
        assert terminal.list_holds() == []
        assert terminal.resumed_hold_id is None
        assert stock_of(product.id) == 9

    def test_commit_survives_hold_cleanup_failure(self, app, product, stock_of, monkeypatch):
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        held = terminal.hold()
        terminal.resume(held.id)

        def failing_save(self, held):
            raise PersistenceFailure("Held sales could not be saved")

        monkeypatch.setattr(HoldStore, "_save", failing_save)
        sale = terminal.commit("alice")

        assert sale.id is not None
        assert terminal.cart.is_empty
        assert terminal.draft is None
        assert terminal.resumed_hold_id is None
        assert db.session.query(Sale).count() == 1
        assert stock_of(product.id) == 9

    def test_rehold_supersedes_resumed_hold(self, app, product):
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        first = terminal.hold()
        terminal.resume(first.id)
        second = terminal.hold()
        assert [h.id for h in terminal.list_holds()] == [second.id]

    def test_hold_empty_cart(self, app):
        with pytest.raises(EmptyCart):
            get_terminal("t1").hold()

    def test_cancel_checkout_writes_nothing(self, app, product, stock_of):
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        terminal.open_checkout()
        terminal.cancel_checkout()
        assert terminal.draft is None
        assert len(terminal.cart) == 1
        assert db.session.query(Sale).count() == 0
        assert stock_of(product.id) == 10

    def test_commit_requires_open_checkout(self, app, product):
        terminal = get_terminal("t1")
        terminal.add_to_cart(product.id)
        with pytest.raises(ValidationError):
            terminal.commit("alice")

    def test_sessions_are_per_terminal(self, app, product):
        get_terminal("t1").add_to_cart(product.id)
        assert get_terminal("t2").cart.is_empty
        assert len(get_terminal("t1").cart) == 1
        reset_terminals()
        assert get_terminal("t1").cart.is_empty
