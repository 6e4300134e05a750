"""Tests for printshop.services.catalog_service."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

from printshop import db
from printshop.models.catalog import Filament
from printshop.services.catalog_service import (
    FilamentResolver,
    load_wizard_options,
    resolve_relation_id,
)


class TestResolveRelationId:
    def test_plain_ids(self) -> None:
        assert resolve_relation_id(7) == 7
        assert resolve_relation_id("7") == 7
        assert resolve_relation_id(" 12 ") == 12

    def test_non_numeric_string_is_kept(self) -> None:
        assert resolve_relation_id("64f1c0ffee") == "64f1c0ffee"

    def test_mappings(self) -> None:
        assert resolve_relation_id({"id": 4, "name": "PLA"}) == 4
        assert resolve_relation_id({"value": "5", "label": "Black"}) == 5

    def test_model_instance(self) -> None:
        assert resolve_relation_id(SimpleNamespace(id=9)) == 9

    def test_missing_values(self) -> None:
        assert resolve_relation_id(None) is None
        assert resolve_relation_id("") is None
        assert resolve_relation_id("   ") is None
        assert resolve_relation_id(True) is None
        assert resolve_relation_id({}) is None
        assert resolve_relation_id(SimpleNamespace(name="no id")) is None


class TestFilamentResolver:
    def test_active_pair(self, catalog) -> None:
        resolver = FilamentResolver()
        assert resolver.resolve(catalog.pla.id, catalog.black.id) == catalog.pla_black.id

    def test_accepts_populated_relations(self, catalog) -> None:
        resolver = FilamentResolver()
        found = resolver.resolve({"id": catalog.petg.id}, str(catalog.black.id))
        assert found == catalog.petg_black.id

    def test_inactive_pair_resolves_to_none(self, catalog) -> None:
        resolver = FilamentResolver()
        assert resolver.resolve(catalog.petg.id, catalog.white.id) is None

    def test_unknown_pair_resolves_to_none(self, catalog) -> None:
        resolver = FilamentResolver()
        assert resolver.resolve(catalog.petg.id, catalog.gold.id) is None

    def test_missing_side_skips_lookup(self, catalog) -> None:
        resolver = FilamentResolver()
        with patch.object(FilamentResolver, "_find_active_filament") as lookup:
            assert resolver.resolve(catalog.pla.id, None) is None
            assert resolver.resolve(None, catalog.black.id) is None
        lookup.assert_not_called()

    def test_oldest_active_filament_wins(self, catalog) -> None:
        newer = Filament(
            name="PLA Black (second spool)",
            material=catalog.pla,
            colour=catalog.black,
            vendor=catalog.vendor,
        )
        db.session.add(newer)
        db.session.commit()

        resolver = FilamentResolver()
        assert newer.id > catalog.pla_black.id
        assert resolver.resolve(catalog.pla.id, catalog.black.id) == catalog.pla_black.id

    def test_repeated_pair_is_looked_up_once(self, catalog) -> None:
        resolver = FilamentResolver()
        with patch.object(
            FilamentResolver,
            "_find_active_filament",
            wraps=FilamentResolver._find_active_filament,
        ) as lookup:
            first = resolver.resolve(catalog.pla.id, catalog.black.id)
            second = resolver.resolve(str(catalog.pla.id), {"id": catalog.black.id})

        assert first == second == catalog.pla_black.id
        assert lookup.call_count == 1

    def test_misses_are_cached_too(self, catalog) -> None:
        resolver = FilamentResolver()
        with patch.object(
            FilamentResolver,
            "_find_active_filament",
            wraps=FilamentResolver._find_active_filament,
        ) as lookup:
            assert resolver.resolve(catalog.petg.id, catalog.white.id) is None
            assert resolver.resolve(catalog.petg.id, catalog.white.id) is None

        assert lookup.call_count == 1

    def test_cache_is_per_resolver(self, catalog) -> None:
        with patch.object(
            FilamentResolver,
            "_find_active_filament",
            wraps=FilamentResolver._find_active_filament,
        ) as lookup:
            FilamentResolver().resolve(catalog.pla.id, catalog.black.id)
            FilamentResolver().resolve(catalog.pla.id, catalog.black.id)

        assert lookup.call_count == 2


class TestLoadWizardOptions:
    def test_only_reachable_options_are_offered(self, catalog) -> None:
        options = load_wizard_options()

        assert [m["name"] for m in options["materials"]] == ["PETG", "PLA"]
        assert [c["name"] for c in options["colours"]] == ["Black", "White"]
        assert [p["name"] for p in options["processes"]] == ["Standard 0.2mm"]

    def test_combinations_follow_active_filaments(self, catalog) -> None:
        options = load_wizard_options()

        assert options["combinations"] == [
            {"materialId": str(catalog.pla.id), "colourId": str(catalog.black.id)},
            {"materialId": str(catalog.pla.id), "colourId": str(catalog.white.id)},
            {"materialId": str(catalog.petg.id), "colourId": str(catalog.black.id)},
        ]

    def test_material_price_falls_back_to_settings(self, catalog) -> None:
        materials = {m["name"]: m for m in load_wizard_options()["materials"]}

        assert materials["PLA"]["pricePerGram"] == 0.05
        assert materials["PETG"]["pricePerGram"] == 0.02
        assert materials["PLA"]["id"] == str(catalog.pla.id)

    def test_colour_options_carry_swatches(self, catalog) -> None:
        colours = {c["name"]: c for c in load_wizard_options()["colours"]}

        assert colours["Black"]["swatches"] == ["#111111"]
        assert colours["Black"]["finish"] == "regular"
        assert colours["Black"]["type"] == "solid"

    def test_empty_catalog(self, app) -> None:
        assert load_wizard_options() == {
            "materials": [],
            "colours": [],
            "processes": [],
            "combinations": [],
        }
