import pytest

from pubpos.validation import (
    ValidationError,
    optional_text,
    parse_money_cents,
    parse_order_items,
    require_int,
)


class TestMoney:

    @pytest.mark.parametrize("raw,cents", [
        ("5.00", 500),
        ("5", 500),
        (5, 500),
        (0.1, 10),
        ("2.505", 251),
        ("0", 0),
    ])
    def test_parse(self, raw, cents):
        assert parse_money_cents(raw) == cents

    @pytest.mark.parametrize("raw", [None, True, "", "abc", "NaN", "Infinity"])
    def test_reject(self, raw):
        with pytest.raises(ValidationError):
            parse_money_cents(raw)


class TestOrderItems:

    def test_parse(self):
        assert parse_order_items([{"product_id": 1, "quantity": 2}, {"product_id": "3", "quantity": "1"}]) == [
            (1, 2),
            (3, 1),
        ]

    @pytest.mark.parametrize("raw", [
        None,
        [],
        {"product_id": 1, "quantity": 1},
        [{"product_id": 1}],
        [{"product_id": 1, "quantity": 0}],
        [{"product_id": 1, "quantity": -2}],
        [{"product_id": 1, "quantity": 1.5}],
        ["1x2"],
    ])
    def test_reject(self, raw):
        with pytest.raises(ValidationError):
            parse_order_items(raw)


class TestScalars:

    def test_require_int(self):
        assert require_int({"id": "7"}, "id") == 7
        with pytest.raises(ValidationError):
            require_int({}, "id")
        with pytest.raises(ValidationError):
            require_int({"id": True}, "id")

    def test_optional_text(self):
        assert optional_text({"notes": "  hi "}, "notes") == "hi"
        assert optional_text({"notes": "   "}, "notes") is None
        assert optional_text({}, "notes") is None
