import json

import pytest

from storefront.core.errors import NotFound, ValidationError
from storefront.models.schemas import Product
from storefront.services.cart import CartLedger, JsonFileSlot


def make_product(pid, price, stock=10, name=None):
    return Product(id=pid, name=name or f"Item {pid}", description="", price=price,
                   category="Other", stock=stock, image=f"/img/{pid}.png")


@pytest.fixture
def slot(tmp_path):
    return JsonFileSlot(tmp_path / "cart.json")


def test_total_tracks_every_mutation():
    cart = CartLedger()
    a, b = make_product("a", 19.99), make_product("b", 5.00)

    cart.add(a)
    assert cart.total() == 19.99
    cart.add(a)
    cart.add(b)
    assert cart.total() == 44.98
    cart.set_quantity("b", 3)
    assert cart.total() == 54.98
    cart.remove("a")
    assert cart.total() == 15.0
    assert cart.count() == 3


def test_add_existing_increments_and_clamps_to_stock():
    cart = CartLedger()
    p = make_product("a", 2.5, stock=3)

    cart.add(p, 2)
    line = cart.add(p, 5)

    assert line.quantity == 3
    assert len(cart) == 1


def test_add_out_of_stock_product_is_refused():
    with pytest.raises(ValidationError):
        CartLedger().add(make_product("a", 1.0, stock=0))


def test_set_quantity_clamps_to_one_without_stock_ceiling():
    cart = CartLedger()
    cart.add(make_product("a", 1.0, stock=2))

    assert cart.set_quantity("a", 0).quantity == 1
    assert cart.set_quantity("a", 50).quantity == 50
    with pytest.raises(NotFound):
        cart.set_quantity("missing", 2)


def test_lines_keep_insertion_order():
    cart = CartLedger()
    for pid in ("c", "a", "b"):
        cart.add(make_product(pid, 1.0))
    cart.add(make_product("a", 1.0))

    assert [line.productId for line in cart] == ["c", "a", "b"]


def test_line_keeps_price_from_when_it_was_added():
    cart = CartLedger()
    cart.add(make_product("a", 10.0))
    cart.add(make_product("a", 20.0))

    assert cart.items()[0].price == 10.0
    assert cart.total() == 20.0


def test_ledger_survives_restart(slot):
    cart = CartLedger(slot)
    cart.add(make_product("x", 3.25), 2)
    cart.add(make_product("y", 1.5))

    restored = CartLedger(slot)

    assert [(line.productId, line.quantity) for line in restored] == [("x", 2), ("y", 1)]
    assert restored.total() == 8.0


def test_corrupt_slot_resets_to_empty_and_is_cleared(slot):
    slot.save("{not json")

    cart = CartLedger(slot)

    assert cart.is_empty()
    assert slot.load() is None


def test_undecodable_slot_resets_to_empty_and_is_cleared(slot):
    slot.path.write_bytes(b"\xff\xfe[garbage")

    cart = CartLedger(slot)

    assert cart.is_empty()
    assert not slot.path.exists()


def test_unreadable_slot_path_resets(tmp_path):
    # a directory where the file should be: read_text raises IsADirectoryError
    (tmp_path / "cart.json").mkdir()

    cart = CartLedger(JsonFileSlot(tmp_path / "cart.json"))

    assert cart.is_empty()


def test_wrong_shape_in_slot_resets(slot):
    slot.save(json.dumps({"productId": "a"}))
    assert CartLedger(slot).is_empty()

    slot.save(json.dumps([{"productId": "a", "name": "A", "price": -1, "quantity": 1}]))
    assert CartLedger(slot).is_empty()


def test_clear_empties_ledger_and_slot(slot):
    cart = CartLedger(slot)
    cart.add(make_product("a", 1.0))

    cart.clear()

    assert cart.total() == 0
    assert slot.load() is None
