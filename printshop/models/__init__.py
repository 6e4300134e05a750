# models/__init__.py
from datetime import datetime
from typing import Iterable

from .. import db


class BaseModel(db.Model):
    """
    Integer primary key, timestamps and commit-or-rollback helpers shared
    by every table
    """
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def save(self):
        """Add and commit; the session is rolled back if the commit fails"""
        db.session.add(self)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return self

    def delete(self):
        db.session.delete(self)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    @classmethod
    def get_by_id(cls, id):
        return db.session.get(cls, id)

    @classmethod
    def existing_ids(cls, ids: Iterable) -> set:
        """The subset of ``ids`` that are rows of this table"""
        wanted = {value for value in ids if value is not None}
        if not wanted:
            return set()
        return {row[0] for row in db.session.query(cls.id).filter(cls.id.in_(wanted))}


# Registration order follows the foreign keys
from .user import User, Role  # noqa: E402
from .catalog import Material, Colour, ColourSwatch, Process, Vendor, Filament  # noqa: E402
from .model_file import Model  # noqa: E402
from .quote import Quote, QuoteItem, QuoteStatus  # noqa: E402
from .gcode import Gcode  # noqa: E402
from .settings import Settings  # noqa: E402
