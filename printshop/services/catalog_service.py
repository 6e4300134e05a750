# services/catalog_service.py
from collections.abc import Mapping
from typing import Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from .. import db, logger
from ..models.catalog import Material, Colour, Process, Filament
from ..models.settings import Settings

RelationID = Union[int, str]


def resolve_relation_id(value) -> Optional[RelationID]:
    """
    Normalize a relationship value to a scalar identifier.

    Accepts a raw id, a mapping carrying ``id`` or ``value`` (populated
    documents and select options), or a model instance. Numeric strings are
    converted to int so that ``"3"`` and ``3`` refer to the same row.
    Returns None for anything that does not carry an id.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Mapping):
        candidate = value.get('id')
        if candidate is None:
            candidate = value.get('value')
        return _scalar_id(candidate)

    if isinstance(value, (int, str)):
        return _scalar_id(value)

    return _scalar_id(getattr(value, 'id', None))


def _scalar_id(value) -> Optional[RelationID]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        return int(value) if value.isdigit() else value
    return None


class FilamentResolver:
    """
    Finds the active filament supplying a (material, colour) pair.

    One resolver is created per normalization pass; lookups are memoized by
    ``"material:colour"`` so repeated pairs across items cost one query.
    When several active filaments share a pair, the oldest (lowest id) wins.
    """

    def __init__(self):
        self._cache: Dict[str, Optional[int]] = {}

    def resolve(self, material, colour) -> Optional[int]:
        material_id = resolve_relation_id(material)
        colour_id = resolve_relation_id(colour)

        if material_id is None or colour_id is None:
            return None

        cache_key = f"{material_id}:{colour_id}"
        if cache_key not in self._cache:
            self._cache[cache_key] = self._find_active_filament(material_id, colour_id)
        return self._cache[cache_key]

    @staticmethod
    def _find_active_filament(material_id, colour_id) -> Optional[int]:
        row = db.session.query(Filament.id).filter(
            Filament.material_id == material_id,
            Filament.colour_id == colour_id,
            Filament.active.is_(True)
        ).order_by(Filament.id).first()
        return row[0] if row else None


def _option_id(value) -> str:
    return str(value)


def load_wizard_options() -> Dict[str, List[Dict]]:
    """
    Build the customer-facing catalog for the quote wizard.

    Only materials and colours reachable through an active filament are
    offered, and only active processes. ``combinations`` lists each distinct
    (material, colour) pair once, in filament order; option ids are strings.
    """
    filament_rows = db.session.query(Filament.material_id, Filament.colour_id).filter(
        Filament.active.is_(True)
    ).order_by(Filament.id).all()

    combinations = []
    seen = set()
    for material_id, colour_id in filament_rows:
        if material_id is None or colour_id is None:
            continue
        key = (material_id, colour_id)
        if key in seen:
            continue
        seen.add(key)
        combinations.append({
            "materialId": _option_id(material_id),
            "colourId": _option_id(colour_id),
        })

    material_ids = {material_id for material_id, _ in seen}
    colour_ids = {colour_id for _, colour_id in seen}

    default_price_per_gram = 0
    try:
        settings = Settings.get_solo()
        if settings is not None and settings.price_per_gram is not None:
            default_price_per_gram = settings.price_per_gram
    except SQLAlchemyError as e:
        logger.warning(f"Could not read settings for wizard options: {str(e)}")

    materials = Material.query.filter(Material.id.in_(material_ids)).all() if material_ids else []
    colours = Colour.query.filter(Colour.id.in_(colour_ids)).all() if colour_ids else []
    processes = Process.query.filter(Process.active.is_(True)).all()

    material_options = sorted((
        {
            "id": _option_id(material.id),
            "name": material.name or 'Untitled material',
            "pricePerGram": (material.price_per_gram
                             if material.price_per_gram is not None else default_price_per_gram),
        }
        for material in materials
    ), key=lambda option: option["name"].lower())

    colour_options = sorted((
        {
            "id": _option_id(colour.id),
            "name": colour.name or 'Untitled colour',
            "finish": colour.finish.value if colour.finish else None,
            "type": colour.type.value if colour.type else None,
            "swatches": colour.hexcodes,
        }
        for colour in colours
    ), key=lambda option: option["name"].lower())

    process_options = sorted((
        {"id": _option_id(process.id), "name": process.name or 'Untitled process'}
        for process in processes
    ), key=lambda option: option["name"].lower())

    logger.debug(f"Loaded wizard options: {len(material_options)} materials, "
                 f"{len(colour_options)} colours, {len(combinations)} combinations")

    return {
        "materials": material_options,
        "colours": colour_options,
        "processes": process_options,
        "combinations": combinations,
    }
