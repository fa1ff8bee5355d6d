"""Tests for the built-in validator library and input masks."""

from datetime import date, datetime

import pytest

from forms.lib import validators as v
from forms.lib.masks import apply_mask, matches_mask


class TestBasicValidators:
    def test_required(self):
        check = v.required()
        assert check(None) == "This field is required"
        assert check("") == "This field is required"
        assert check([]) == "This field is required"
        assert check("x") is None
        assert check(False) is None
        assert check(0) is None

    def test_required_custom_message(self):
        assert v.required("Name please")("") == "Name please"

    @pytest.mark.parametrize("value", ["ada@example.com", "a.b-c@mail.example.org"])
    def test_email_valid(self, value):
        assert v.email()(value) is None

    @pytest.mark.parametrize("value", ["ada", "ada@", "@example.com", "ada@example"])
    def test_email_invalid(self, value):
        assert v.email()(value) == "Please enter a valid email address"

    def test_format_validators_skip_blank(self):
        for check in (v.email(), v.url(), v.phone(), v.min_length(3), v.credit_card(), v.mask("000")):
            assert check("") is None
            assert check(None) is None

    def test_lengths(self):
        assert v.min_length(3)("ab") == "Must be at least 3 characters"
        assert v.min_length(3)("abc") is None
        assert v.max_length(2)("abc") == "Must be at most 2 characters"

    def test_pattern(self):
        check = v.pattern(r"^[A-Z]{3}$", "Three capitals")
        assert check("ABC") is None
        assert check("abc") == "Three capitals"

    def test_composite_first_failure_wins(self):
        check = v.composite(v.required(), v.min_length(5), v.email())
        assert check("") == "This field is required"
        assert check("a@b") == "Must be at least 5 characters"
        assert check("abcdef") == "Please enter a valid email address"


class TestNumericValidators:
    def test_numeric(self):
        check = v.numeric()
        assert check("12.5") is None
        assert check("-3") is None
        assert check(7) is None
        assert check("12a") == "Please enter a valid number"
        assert check(True) == "Please enter a valid number"

    def test_numeric_integers_only(self):
        check = v.numeric(allow_decimal=False)
        assert check("12") is None
        assert check("12.5") == "Please enter a valid number"
        assert check(2.5) == "Please enter a valid number"

    def test_min_max_value(self):
        assert v.min_value(18)(17) == "Value must be at least 18"
        assert v.min_value(18)("21") is None
        assert v.max_value(10)(10.5) == "Value must be at most 10"
        # Non-numeric input is left to numeric()
        assert v.min_value(18)("abc") is None

    def test_value_range(self):
        assert v.value_range(1, 5)(5) is None
        assert v.value_range(1, 5)(6) == "Value must be between 1 and 5"
        assert v.value_range(1, 5, inclusive=False)(5) == "Value must be between 1 and 5 (exclusive)"


class TestFormatValidators:
    def test_phone_ignores_separators(self):
        assert v.phone()("+1 (555) 123-4567") is None
        assert v.phone()("12345") == "Please enter a valid phone number"

    def test_url(self):
        assert v.url()("https://example.com/path") is None
        assert v.url()("example.com") == "Please enter a valid URL"
        assert v.url(require_protocol=False)("example.com") is None

    def test_password_lists_missing_requirements(self):
        check = v.password()
        assert check("Abcdef1!") is None
        assert check("abcdefg1!") == "Password must contain uppercase letter"
        assert check("abc") == (
            "Password must contain at least 8 characters, uppercase letter, "
            "number and special character"
        )

    def test_credit_card(self):
        check = v.credit_card()
        assert check("4111 1111 1111 1111") is None
        assert check("4111111111111112") == "Please enter a valid credit card number"
        # Luhn-valid but no known issuer prefix
        assert check("1234567812345670") == "Unrecognized card type"
        assert v.credit_card(validate_type=False)("1234567812345670") is None

    def test_zip_code(self):
        assert v.zip_code(country_code="us")("12345-6789") is None
        assert v.zip_code(country_code="US")("1234") == "Please enter a valid zip/postal code for US"
        assert v.zip_code(country_code="CA")("K1A 0B1") is None
        assert v.zip_code()("SW1A 1AA") is None

    def test_ip_address(self):
        assert v.ip_address()("192.168.0.1") is None
        assert v.ip_address()("::1") is None
        assert v.ip_address()("300.1.1.1") == "Please enter a valid IP address"
        assert v.ip_address(allow_ipv6=False)("::1") == "Please enter a valid IP address"

    def test_file_extension(self):
        check = v.file_extension([".pdf", "png"])
        assert check("report.PDF") is None
        assert check("image.gif") == "File type not allowed"
        assert check("noext") == "File type not allowed"

    def test_contains(self):
        assert v.contains("acme")("ACME Corp") is None
        assert v.contains("acme", case_sensitive=True)("ACME Corp") == 'Value must contain "acme"'
        assert v.not_contains("spam")("Spam offer") == 'Value must not contain "spam"'

    def test_mask_validator(self):
        check = v.mask("(000) 000-0000")
        assert check("(555) 123-4567") is None
        assert check("(555) 123") == "Value does not match the expected format"


class TestComparisonValidators:
    def test_in_list(self):
        assert v.in_list(["red", "green"])("red") is None
        assert v.in_list(["red", "green"])("Red") == "Value is not in the allowed list"
        assert v.in_list(["red", "green"], case_sensitive=False)("Red") is None
        assert v.in_list([1, 2])(True) == "Value is not in the allowed list"

    def test_equal_to(self):
        assert v.equal_to("yes")("yes") is None
        assert v.equal_to("yes", case_sensitive=False)("YES") is None
        assert v.equal_to(1)(1.0) == "Value must equal the specified value"
        assert v.not_equal_to("admin")("admin") == "Value must not equal the specified value"

    def test_match_field_reads_current_values(self):
        values = {"password": "secret"}
        check = v.match_field("password", lambda: values)
        assert check("secret") is None
        values["password"] = "changed"
        assert check("secret") == "Fields do not match"


class TestDateRange:
    def test_within_bounds(self):
        check = v.date_range(date(2024, 1, 1), date(2024, 12, 31))
        assert check(date(2024, 6, 1)) is None
        assert check(datetime(2024, 12, 31, 0, 0)) is None

    def test_outside_bounds(self):
        check = v.date_range(date(2024, 1, 1), date(2024, 12, 31))
        assert check(date(2023, 12, 31)) == "Date must be on or after 1/1/2024"
        assert check(date(2025, 1, 1)) == "Date must be on or before 31/12/2024"

    def test_iso_strings(self):
        check = v.date_range(min_date=date(2024, 1, 1))
        assert check("2024-02-01") is None
        assert check("not a date") == "Invalid date format"

    def test_wrong_kind(self):
        assert v.date_range()(42) == "Please enter a valid date"


class TestMasks:
    def test_phone_mask(self):
        assert apply_mask("(000) 000-0000", "5551234567") == "(555) 123-4567"

    def test_partial_input_stops_early(self):
        assert apply_mask("(000) 000-0000", "555") == "(555"

    def test_skips_characters_that_do_not_fit(self):
        assert apply_mask("000-000", "12a3b456") == "123-456"

    def test_idempotent(self):
        once = apply_mask("(000) 000-0000", "5551234567")
        assert apply_mask("(000) 000-0000", once) == once

    def test_letter_tokens(self):
        assert apply_mask("AA-aa", "XYZW") == "XY-zw"
        assert apply_mask("###", "a1!b") == "a1b"

    def test_matches_mask(self):
        assert matches_mask("AA-00", "AB-12")
        assert not matches_mask("AA-00", "AB12")
        assert not matches_mask("aa", "AB")
