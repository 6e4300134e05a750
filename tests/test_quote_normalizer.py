"""Tests for the quote before-save hooks."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from printshop.services.quote_service import (
    CONTACT_EMAIL_REQUIRED,
    QuoteValidationError,
    normalize_quote_customer,
    resolve_quote_items_and_amount,
)


def _user(user_id=5):
    return SimpleNamespace(id=user_id, is_authenticated=True)


class TestNormalizeQuoteCustomer:
    def test_guest_without_contact_is_rejected(self) -> None:
        with pytest.raises(QuoteValidationError) as excinfo:
            normalize_quote_customer({"items": []})
        assert str(excinfo.value) == CONTACT_EMAIL_REQUIRED

    def test_guest_with_blank_email_is_rejected(self) -> None:
        with pytest.raises(QuoteValidationError):
            normalize_quote_customer({"customer_email": "   "})

    def test_guest_email_is_trimmed_and_lowercased(self) -> None:
        data = normalize_quote_customer({"customer_email": "  Jane@Example.COM "})
        assert data["customer_email"] == "jane@example.com"
        assert data.get("customer") is None

    def test_authenticated_email_keeps_its_case(self) -> None:
        data = normalize_quote_customer({"customer_email": " Jane@Example.com "}, user=_user())
        assert data["customer_email"] == "Jane@Example.com"

    def test_authenticated_requester_becomes_customer(self) -> None:
        data = normalize_quote_customer({}, user=_user(5))
        assert data["customer"] == 5

    def test_existing_customer_is_kept_on_update(self) -> None:
        original = {"customer": 3, "customer_email": None}
        data = normalize_quote_customer({"status": "reviewing"}, original=original)
        assert data["customer"] == 3

    def test_existing_customer_beats_requester(self) -> None:
        data = normalize_quote_customer({"customer": {"id": 3}}, user=_user(5))
        assert data["customer"] == 3

    def test_original_email_is_kept_for_guest_updates(self) -> None:
        original = {"customer": None, "customer_email": "guest@example.com"}
        data = normalize_quote_customer({"customer_email": ""}, original=original)
        assert data["customer_email"] == "guest@example.com"

    def test_staff_edit_keeps_guest_email(self) -> None:
        original = {"customer": None, "customer_email": "guest@example.com"}
        data = normalize_quote_customer({"customer_email": "guest@example.com"},
                                        original=original, user=_user(99))
        assert data["customer_email"] == "guest@example.com"
        assert data.get("customer") is None

    def test_none_passes_through(self) -> None:
        assert normalize_quote_customer(None) is None


class TestResolveQuoteItemsAndAmount:
    def test_end_to_end_example(self, quote_item) -> None:
        data = resolve_quote_items_and_amount({"items": [quote_item(grams=20, quantity=3)]})

        assert data["items"][0]["line_amount"] == 300
        assert data["amount"] == 300
        assert data["currency"] == "USD"

    def test_filament_is_derived_and_client_value_replaced(self, catalog, quote_item) -> None:
        data = resolve_quote_items_and_amount({
            "items": [
                quote_item(filament=12345),
                quote_item(material=catalog.petg.id, colour=catalog.white.id),
            ]
        })

        assert data["items"][0]["filament"] == catalog.pla_black.id
        assert data["items"][1]["filament"] is None

    def test_client_line_amount_is_replaced(self, quote_item) -> None:
        data = resolve_quote_items_and_amount({"items": [quote_item(line_amount=999999)]})
        assert data["items"][0]["line_amount"] == 0
        assert data["amount"] == 0

    def test_amount_sums_lines(self, catalog, quote_item) -> None:
        data = resolve_quote_items_and_amount({
            "items": [
                quote_item(grams=20, quantity=3),
                quote_item(material=catalog.petg.id, grams=10, quantity=2),
                quote_item(price_override=7.25, quantity=2),
            ]
        })

        assert [item["line_amount"] for item in data["items"]] == [300, 40, 1450]
        assert data["amount"] == 1790

    def test_quantity_is_normalized(self, quote_item) -> None:
        data = resolve_quote_items_and_amount({"items": [quote_item(quantity=0)]})
        assert data["items"][0]["quantity"] == 1

    def test_empty_entries_pass_through(self, quote_item) -> None:
        data = resolve_quote_items_and_amount({"items": [None, quote_item(price_override=1)]})
        assert data["items"][0] is None
        assert data["amount"] == 100

    def test_no_items(self, settings) -> None:
        data = resolve_quote_items_and_amount({"items": []})
        assert data["amount"] == 0
        assert data["currency"] == "USD"

    def test_existing_currency_is_kept(self, quote_item) -> None:
        data = resolve_quote_items_and_amount({"items": [quote_item()], "currency": "EUR"})
        assert data["currency"] == "EUR"

    def test_currency_defaults_from_config_without_settings(self, app) -> None:
        app.config["DEFAULT_CURRENCY"] = "GBP"
        data = resolve_quote_items_and_amount({"items": []})
        assert data["currency"] == "GBP"
