from sqlalchemy import Column, Float, String

from .. import db
from . import BaseModel


class Settings(BaseModel):
    """
    Global singleton holding the storefront defaults. Only the first row is
    ever read.
    """
    __tablename__ = 'settings'

    price_per_gram = Column(Float, nullable=True, doc="Default price per gram when a material has none.")
    currency = Column(String(3), nullable=True)

    # Slicer baselines, passed to the slicing collaborator untouched
    machine = Column(db.JSON, nullable=False, default=dict)
    process = Column(db.JSON, nullable=False, default=dict)
    filament = Column(db.JSON, nullable=False, default=dict)

    @classmethod
    def get_solo(cls):
        return cls.query.order_by(cls.id).first()

    def serialize(self):
        return {
            "price_per_gram": self.price_per_gram,
            "currency": self.currency,
            "machine": self.machine,
            "process": self.process,
            "filament": self.filament,
        }
