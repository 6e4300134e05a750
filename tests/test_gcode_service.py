"""Tests for the gcode after-save hook."""

from __future__ import annotations

from unittest.mock import patch

from sqlalchemy.exc import IntegrityError

from printshop.models.gcode import Gcode
from printshop.services.gcode_service import (
    build_gcode_key,
    collect_combinations,
    create_quote_gcodes,
)
from printshop.services.quote_service import QuoteService


class TestCollectCombinations:
    def test_dedups_in_item_order(self) -> None:
        items = [
            {"model": 1, "material": 2, "process": 3, "filament": 4},
            {"model": {"id": 5}, "material": "2", "process": 3, "filament": 4},
            {"model": "1", "material": 2, "process": 3, "filament": {"id": 4}},
        ]
        combinations = collect_combinations(items)

        assert list(combinations) == ["1:2:3:4", "5:2:3:4"]
        assert combinations["5:2:3:4"] == (5, 2, 3, 4)

    def test_incomplete_items_are_skipped(self) -> None:
        items = [
            {"model": 1, "material": 2, "process": 3, "filament": None},
            {"model": 1, "material": 2, "filament": 4},
            None,
            {},
        ]
        assert collect_combinations(items) == {}

    def test_key(self) -> None:
        assert build_gcode_key(1, 2, 3, 4) == "1:2:3:4"


class TestCreateQuoteGcodes:
    def _create(self, items):
        return QuoteService.create_quote({"items": items, "customer_email": "guest@example.com"})

    def test_shared_combination_creates_one_record(self, quote_item) -> None:
        quote = self._create([quote_item(), quote_item(quantity=4)])

        gcodes = Gcode.query.filter_by(quote_id=quote.id).all()
        assert len(gcodes) == 1

    def test_resave_creates_nothing(self, quote_item) -> None:
        quote = self._create([quote_item()])

        created = create_quote_gcodes(quote.to_document(), "update")

        assert created == []
        assert Gcode.query.filter_by(quote_id=quote.id).count() == 1

    def test_one_record_per_unique_combination(self, catalog, quote_item, second_model_file) -> None:
        quote = self._create([
            quote_item(),
            quote_item(model=second_model_file.id),
            quote_item(colour=catalog.white.id),
        ])

        combinations = {gcode.combination for gcode in Gcode.query.filter_by(quote_id=quote.id)}
        assert combinations == {
            (quote.items[0].model_id, catalog.pla.id, catalog.standard.id, catalog.pla_black.id),
            (second_model_file.id, catalog.pla.id, catalog.standard.id, catalog.pla_black.id),
            (quote.items[0].model_id, catalog.pla.id, catalog.standard.id, catalog.pla_white.id),
        }

    def test_items_without_filament_are_not_materialized(self, catalog, quote_item) -> None:
        quote = self._create([quote_item(material=catalog.petg.id, colour=catalog.white.id)])
        assert Gcode.query.filter_by(quote_id=quote.id).count() == 0

    def test_skips_delete_and_incomplete_documents(self, quote_item) -> None:
        quote = self._create([quote_item()])
        doc = quote.to_document()

        assert create_quote_gcodes(doc, "delete") == []
        assert create_quote_gcodes(None, "create") == []
        assert create_quote_gcodes(dict(doc, id=None), "create") == []
        assert create_quote_gcodes(dict(doc, items=[]), "create") == []

    def test_concurrent_insert_is_skipped(self, quote_item) -> None:
        quote = self._create([quote_item()])
        Gcode.query.filter_by(quote_id=quote.id).delete()

        with patch.object(Gcode, "save", side_effect=IntegrityError("INSERT", {}, Exception("duplicate"))):
            created = create_quote_gcodes(quote.to_document(), "update")

        assert created == []
