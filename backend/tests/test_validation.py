"""
Payload validation tests (model-driven coercion and policy allowlists).
"""

from datetime import date

import pytest

from optica.errors import ValidationError
from optica.models import Appointment, Customer, Product
from optica.validation import (
    APPOINTMENT_POLICY,
    CUSTOMER_POLICY,
    MAX_DB_INTEGER,
    PRODUCT_POLICY,
    enforce_rules_appointment,
    enforce_rules_product,
    is_db_integer,
    parse_id,
    validate_payload,
    validate_sale_items,
)


class TestValidatePayload:

    def test_partial_keeps_only_present_keys(self):
        patch = validate_payload(model=Customer, payload={"city": " Recife "}, policy=CUSTOMER_POLICY, partial=True)
        assert patch == {"city": "Recife"}

    def test_blank_optional_string_clears_field(self):
        patch = validate_payload(model=Customer, payload={"phone": "  "}, policy=CUSTOMER_POLICY, partial=True)
        assert patch == {"phone": None}

    def test_date_coercion(self):
        patch = validate_payload(
            model=Customer, payload={"name": "A", "birth_date": "1985-12-01"}, policy=CUSTOMER_POLICY, partial=False,
        )
        assert patch["birth_date"] == date(1985, 12, 1)

    def test_max_length(self):
        with pytest.raises(ValidationError, match="max length"):
            validate_payload(model=Customer, payload={"cpf": "1" * 15}, policy=CUSTOMER_POLICY, partial=True)

    @pytest.mark.parametrize("value", ["1e3", "12.5", 12.5, True, [], ""])
    def test_strict_integers(self, value):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"stock_quantity": value}, policy=PRODUCT_POLICY, partial=True)

    def test_numeric_string_integer_accepted(self):
        patch = validate_payload(model=Product, payload={"stock_quantity": " 7 "}, policy=PRODUCT_POLICY, partial=True)
        assert patch == {"stock_quantity": 7}

    def test_choices(self):
        with pytest.raises(ValidationError, match="category must be one of"):
            validate_payload(model=Product, payload={"category": "frame"}, policy=PRODUCT_POLICY, partial=True)

    def test_non_dict_payload(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Customer, payload=["name"], policy=CUSTOMER_POLICY, partial=True)

    def test_lens_treatments_must_be_strings(self):
        with pytest.raises(ValidationError):
            validate_payload(
                model=Product, payload={"lens_treatments": "anti-glare"}, policy=PRODUCT_POLICY, partial=True,
            )

    def test_appointment_time_format(self):
        patch = validate_payload(
            model=Appointment, payload={"appointment_time": "07:05"}, policy=APPOINTMENT_POLICY, partial=True,
        )
        enforce_rules_appointment(patch)

        with pytest.raises(ValidationError):
            enforce_rules_appointment({"appointment_time": "7:05pm"})


class TestSaleItems:

    def test_normalizes_items(self):
        items = validate_sale_items([
            {"product_id": "3", "quantity": 2},
            {"product_id": 4, "quantity": "1", "unit_price_cents": 990},
        ])

        assert items == [
            {"product_id": 3, "quantity": 2, "unit_price_cents": None},
            {"product_id": 4, "quantity": 1, "unit_price_cents": 990},
        ]

    @pytest.mark.parametrize("items", [
        None,
        [],
        {"product_id": 1, "quantity": 1},
        ["not-an-object"],
        [{"quantity": 1}],
        [{"product_id": 1}],
        [{"product_id": 1, "quantity": -2}],
        [{"product_id": 1, "quantity": 1, "unit_price_cents": -1}],
        [{"product_id": 1, "quantity": 1, "discount": 5}],
        [{"product_id": 2 ** 63, "quantity": 1}],
        [{"product_id": 1, "quantity": "99999999999999999999"}],
    ])
    def test_rejects(self, items):
        with pytest.raises(ValidationError):
            validate_sale_items(items)


def test_parse_id():
    assert parse_id("12", "customer_id") == 12
    with pytest.raises(ValidationError):
        parse_id(None, "customer_id")
    with pytest.raises(ValidationError):
        parse_id("abc", "customer_id")
    with pytest.raises(ValidationError, match="out of range"):
        parse_id("99999999999999999999", "customer_id")


def test_db_integer_bounds():
    assert is_db_integer(MAX_DB_INTEGER)
    assert is_db_integer(-MAX_DB_INTEGER - 1)
    assert not is_db_integer(MAX_DB_INTEGER + 1)
    assert not is_db_integer(True)
    assert not is_db_integer("12")


def test_stock_quantity_ceiling():
    enforce_rules_product({"stock_quantity": 1_000_000})
    with pytest.raises(ValidationError, match="stock_quantity cannot exceed"):
        enforce_rules_product({"stock_quantity": 1_000_001})
