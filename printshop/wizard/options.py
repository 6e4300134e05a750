"""Catalog options for the quote wizard and the material/colour index."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple


def normalize_id(value: Any) -> str:
    return str(value)


@dataclass(frozen=True)
class MaterialOption:
    id: str
    name: str
    price_per_gram: Optional[float] = None


@dataclass(frozen=True)
class ColourOption:
    id: str
    name: str
    finish: Optional[str] = None
    type: Optional[str] = None
    swatches: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProcessOption:
    id: str
    name: str


class CombinationIndex:
    """Bidirectional material <-> colour index over the active filaments.

    Built once from the combination list so that each UI interaction is a
    dictionary lookup instead of a scan.
    """

    def __init__(self, combinations: Iterable[Tuple[Any, Any]] = ()) -> None:
        colours_by_material: Dict[str, set] = defaultdict(set)
        materials_by_colour: Dict[str, set] = defaultdict(set)
        for material_id, colour_id in combinations:
            if material_id is None or colour_id is None:
                continue
            material_key, colour_key = normalize_id(material_id), normalize_id(colour_id)
            colours_by_material[material_key].add(colour_key)
            materials_by_colour[colour_key].add(material_key)

        self._colours_by_material = {key: frozenset(value) for key, value in colours_by_material.items()}
        self._materials_by_colour = {key: frozenset(value) for key, value in materials_by_colour.items()}

    def colours_for(self, material_id: Optional[str]) -> FrozenSet[str]:
        if not material_id:
            return frozenset()
        return self._colours_by_material.get(normalize_id(material_id), frozenset())

    def materials_for(self, colour_id: Optional[str]) -> FrozenSet[str]:
        if not colour_id:
            return frozenset()
        return self._materials_by_colour.get(normalize_id(colour_id), frozenset())

    def allows(self, material_id: Optional[str], colour_id: Optional[str]) -> bool:
        if not colour_id:
            return False
        return normalize_id(colour_id) in self.colours_for(material_id)


class WizardOptions:
    """Everything the preference step can offer, keyed by string id."""

    def __init__(
        self,
        materials: Iterable[MaterialOption] = (),
        colours: Iterable[ColourOption] = (),
        processes: Iterable[ProcessOption] = (),
        combinations: Iterable[Tuple[Any, Any]] = (),
    ) -> None:
        self.materials: List[MaterialOption] = list(materials)
        self.colours: List[ColourOption] = list(colours)
        self.processes: List[ProcessOption] = list(processes)
        self.index = CombinationIndex(combinations)

        self.material_map = {option.id: option for option in self.materials}
        self.colour_map = {option.id: option for option in self.colours}
        self.process_map = {option.id: option for option in self.processes}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WizardOptions":
        """Build options from the ``/api/catalog/options`` response body."""
        materials = [
            MaterialOption(
                id=normalize_id(item["id"]),
                name=item.get("name") or "Untitled material",
                price_per_gram=item.get("pricePerGram"),
            )
            for item in payload.get("materials") or []
        ]
        colours = [
            ColourOption(
                id=normalize_id(item["id"]),
                name=item.get("name") or "Untitled colour",
                finish=item.get("finish"),
                type=item.get("type"),
                swatches=tuple(item.get("swatches") or ()),
            )
            for item in payload.get("colours") or []
        ]
        processes = [
            ProcessOption(id=normalize_id(item["id"]), name=item.get("name") or "Untitled process")
            for item in payload.get("processes") or []
        ]
        combinations = [
            (combo.get("materialId"), combo.get("colourId"))
            for combo in payload.get("combinations") or []
        ]
        return cls(materials, colours, processes, combinations)

    def available_colours(self, material_id: Optional[str]) -> List[ColourOption]:
        """Colours reachable through an active filament of the material."""
        allowed = self.index.colours_for(material_id)
        return [colour for colour in self.colours if colour.id in allowed]

    def available_materials(self, colour_id: Optional[str]) -> List[MaterialOption]:
        allowed = self.index.materials_for(colour_id)
        return [material for material in self.materials if material.id in allowed]

    def has_process(self, process_id: Optional[str]) -> bool:
        return process_id is not None and normalize_id(process_id) in self.process_map
