# Overview: Pytest coverage for payload validation helpers.

from datetime import date, datetime

import pytest

from pdv.errors import ValidationError
from pdv.models import Client, Product
from pdv.services.client_service import CLIENT_POLICY
from pdv.services.products_service import PRODUCT_POLICY
from pdv.time_utils import to_utc_z
from pdv.validation import (
    coerce_int, parse_date_arg, parse_datetime_arg, require_json_object, validate_payload,
)


class TestCoerceInt:
    @pytest.mark.parametrize("value,expected", [(5, 5), ("12", 12), (" 7 ", 7), (-3, -3)])
    def test_accepts_integers(self, value, expected):
        assert coerce_int(value, "qty") == expected

    @pytest.mark.parametrize("value", [True, 1.0, "1.5", "1e3", "", "abc", None, [1]])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError):
            coerce_int(value, "qty")


class TestValidatePayload:
    def test_create_requires_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Product, payload={"name": "Cabo"}, policy=PRODUCT_POLICY, partial=False)
        assert exc_info.value.details == {"missing": ["quantity", "unit_cost_cents"]}

    def test_rejects_unlisted_fields(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"tenant_id": 2}, policy=PRODUCT_POLICY, partial=True)

    def test_rejects_negative_money(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"unit_cost_cents": -1}, policy=PRODUCT_POLICY, partial=True)

    def test_rejects_price_above_cap(self):
        with pytest.raises(ValidationError):
            validate_payload(
                model=Product, payload={"sale_price_cents": 1_000_000_000}, policy=PRODUCT_POLICY, partial=True
            )

    def test_rejects_blank_required_string(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"name": "   "}, policy=PRODUCT_POLICY, partial=True)

    def test_rejects_too_long_string(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"name": "x" * 500}, policy=PRODUCT_POLICY, partial=True)

    def test_normalizes_values(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Cabo USB ", "quantity": "10", "unit_cost_cents": 250},
            policy=PRODUCT_POLICY,
            partial=False,
        )
        assert patch == {"name": "Cabo USB", "quantity": 10, "unit_cost_cents": 250}

    def test_date_column(self):
        patch = validate_payload(
            model=Client, payload={"birth_date": "1990-05-17"}, policy=CLIENT_POLICY, partial=True
        )
        assert patch == {"birth_date": date(1990, 5, 17)}


class TestQueryArgs:
    def test_datetime_arg(self):
        assert parse_datetime_arg("2026-01-02T03:04:05Z", "start") == datetime(2026, 1, 2, 3, 4, 5)
        assert parse_datetime_arg(None, "start") is None
        assert parse_datetime_arg("  ", "start") is None

    def test_datetime_arg_normalizes_to_utc(self):
        assert parse_datetime_arg("2026-01-02T05:04:05+02:00", "start") == datetime(2026, 1, 2, 3, 4, 5)
        assert parse_datetime_arg("2026-01-02", "start") == datetime(2026, 1, 2)

    def test_timestamps_render_with_z(self):
        assert to_utc_z(datetime(2026, 3, 15, 18, 30, 0, 123456)) == "2026-03-15T18:30:00Z"
        assert to_utc_z(None) is None

    def test_datetime_arg_invalid(self):
        with pytest.raises(ValidationError):
            parse_datetime_arg("yesterday", "start")

    def test_date_arg(self):
        assert parse_date_arg("2026-02-28", "due_from") == date(2026, 2, 28)
        assert parse_date_arg("", "due_from") is None

    def test_date_arg_invalid(self):
        with pytest.raises(ValidationError):
            parse_date_arg("28/02/2026", "due_from")

    def test_require_json_object(self):
        assert require_json_object(None) == {}
        with pytest.raises(ValidationError):
            require_json_object([1, 2])
