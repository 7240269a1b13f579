import json

import pytest

from saarthi.security import hash_password, new_oauth_state, oauth_state_matches, verify_password
from saarthi.utils.helpers import (
    MAX_PAGE,
    calculate_emi,
    coerce_int,
    email_analysis,
    error_response,
    format_price,
    generate_property_id,
    generate_slug,
    get_pagination,
    success_response,
    validate_phone,
    validate_pincode,
)


class TestFormatPrice:
    @pytest.mark.parametrize(
        "price,expected",
        [
            (15_000_000, "₹1.5 Cr"),
            (4_500_000, "₹45 L"),
            (12_000, "₹12K"),
            (500, "₹500"),
            (0, "₹0"),
            (None, "₹0"),
            ("not a number", "₹0"),
        ],
    )
    def test_indian_units(self, price, expected):
        assert format_price(price) == expected


class TestSlugAndReference:
    def test_slug_strips_punctuation_and_appends_id(self):
        assert generate_slug("Luxury Villa!! In   Goa", 7) == "luxury-villa-in-goa-7"

    def test_slug_truncates_long_titles(self):
        slug = generate_slug("a" * 80, 3)
        assert slug == "a" * 50 + "-3"

    def test_property_reference_shape(self):
        ref = generate_property_id()
        assert ref.startswith("SAR")
        assert ref == ref.upper()
        assert ref != generate_property_id()


class TestEmi:
    def test_standard_amortisation(self):
        # 10 lakh at 12% for one year.
        assert calculate_emi(1_000_000, 12, 1) == 88849

    def test_zero_rate_is_straight_division(self):
        assert calculate_emi(1_200_000, 0, 1) == 100_000

    def test_non_positive_tenure_rejected(self):
        with pytest.raises(ValueError):
            calculate_emi(1_000_000, 8.5, 0)


class TestValidators:
    @pytest.mark.parametrize("phone", ["9876543210", "+91 9876543210", "+91-7012345678"])
    def test_valid_phones(self, phone):
        assert validate_phone(phone)

    @pytest.mark.parametrize("phone", ["12345", "5876543210", "", "phone"])
    def test_invalid_phones(self, phone):
        assert not validate_phone(phone)

    def test_pincode(self):
        assert validate_pincode("560034")
        assert not validate_pincode("060034")
        assert not validate_pincode("56003")


class TestCoerceInt:
    @pytest.mark.parametrize(
        "raw,expected",
        [(3, 3), ("2", 2), ("3 BHK", 3), ("4+", 4), (2.0, 2), ("", None), ("  ", None), (None, None)],
    )
    def test_accepts_numbers_and_numeric_strings(self, raw, expected):
        assert coerce_int(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", 2.5, True, 2**63, "99999999999999999999", 1e30])
    def test_rejects_non_integers(self, raw):
        with pytest.raises(ValueError):
            coerce_int(raw)


class TestPagination:
    def test_defaults_on_garbage(self):
        assert get_pagination("abc", "x") == (1, 10, 0)

    def test_limit_is_clamped(self):
        assert get_pagination(3, 100) == (3, 50, 100)
        assert get_pagination(0, 0) == (1, 1, 0)

    def test_page_is_bounded(self):
        page, per_page, skip = get_pagination(10**30, 50)
        assert page == MAX_PAGE
        assert skip == (MAX_PAGE - 1) * 50


def test_email_analysis_sums_digits():
    assert email_analysis("a1b2c3@x9.com") == {"totalDigitsSum": 15}
    assert email_analysis("plain@example.com") == {"totalDigitsSum": 0}


class TestEnvelope:
    def test_success_envelope_orders_extra_before_data(self):
        resp = success_response("ok", [1, 2], count=2)
        body = json.loads(resp.body)
        assert resp.status_code == 200
        assert list(body) == ["success", "message", "count", "data"]
        assert body["data"] == [1, 2]

    def test_error_envelope(self):
        resp = error_response(404, "Property not found")
        assert resp.status_code == 404
        assert json.loads(resp.body) == {"success": False, "message": "Property not found"}


class TestSecurity:
    def test_password_round_trip(self):
        h = hash_password("secret123")
        assert h.startswith("$2b$12$")
        assert verify_password("secret123", h)
        assert not verify_password("secret124", h)

    def test_missing_or_malformed_hash(self):
        assert verify_password("secret123", None) is False
        assert verify_password("secret123", "not-a-bcrypt-hash") is False

    def test_oauth_state(self):
        state = new_oauth_state()
        assert state != new_oauth_state()
        assert oauth_state_matches(state, state)
        assert not oauth_state_matches(state, None)
        assert not oauth_state_matches("", "")
