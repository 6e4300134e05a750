# services/gcode_service.py
from collections import OrderedDict
from typing import List, Mapping, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from .. import db, logger
from ..models.gcode import Gcode
from .catalog_service import resolve_relation_id

Combination = Tuple[int, int, int, int]


def build_gcode_key(model, material, process, filament) -> str:
    """Canonical key for a job combination: model:material:process:filament"""
    return ':'.join(str(part) for part in (model, material, process, filament))


def collect_combinations(items) -> "OrderedDict[str, Combination]":
    """
    Complete, de-duplicated (model, material, process, filament) tuples in
    item order. Items missing any of the four (typically the filament, when
    no active filament matched) contribute nothing.
    """
    combinations: "OrderedDict[str, Combination]" = OrderedDict()

    for item in items or []:
        if not item:
            continue

        model = resolve_relation_id(item.get('model'))
        material = resolve_relation_id(item.get('material'))
        process = resolve_relation_id(item.get('process'))
        filament = resolve_relation_id(item.get('filament'))

        if model is None or material is None or process is None or filament is None:
            continue

        combinations[build_gcode_key(model, material, process, filament)] = (
            model, material, process, filament
        )

    return combinations


def _find_existing(quote_id, combination: Combination) -> Optional[int]:
    model, material, process, filament = combination
    row = db.session.query(Gcode.id).filter_by(
        quote_id=quote_id,
        model_id=model,
        material_id=material,
        process_id=process,
        filament_id=filament
    ).first()
    return row[0] if row else None


def create_quote_gcodes(doc: Optional[Mapping], operation: str) -> List[Gcode]:
    """
    After-save hook: make sure one Gcode exists per unique combination on
    the quote.

    Safe to run on every save. Existing records are found by query; the
    unique constraint on gcodes catches a concurrent save that inserted the
    same combination between the check and the insert.

    Returns the Gcode records created by this call.
    """
    if not doc or operation == 'delete':
        return []

    quote_id = doc.get('id')
    items = doc.get('items')
    if not quote_id or not isinstance(items, list) or not items:
        return []

    combinations = collect_combinations(items)
    if not combinations:
        return []

    created = []
    for key, combination in combinations.items():
        if _find_existing(quote_id, combination) is not None:
            continue

        model, material, process, filament = combination
        gcode = Gcode(
            quote_id=quote_id,
            model_id=model,
            material_id=material,
            process_id=process,
            filament_id=filament
        )
        try:
            gcode.save()
        except IntegrityError:
            logger.info(f"Gcode {key} for quote {quote_id} was created concurrently, skipping")
            continue

        logger.info(f"Created gcode {gcode.id} for quote {quote_id} ({key})")
        created.append(gcode)

    return created


def get_gcodes_for_quote(quote_id) -> List[Gcode]:
    return Gcode.query.filter_by(quote_id=quote_id).order_by(Gcode.id).all()
