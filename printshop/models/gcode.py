from sqlalchemy import Column, Integer, Float, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .. import db
from . import BaseModel


class Gcode(BaseModel):
    """
    Downstream slicing job record. Created only by the quote after-save hook,
    one per unique (model, material, process, filament) under a quote, and
    filled in later by the slicer (estimated_weight, gcode, slice_job_id).
    """
    __tablename__ = 'gcodes'
    __table_args__ = (
        UniqueConstraint('quote_id', 'model_id', 'material_id', 'process_id', 'filament_id',
                         name='uq_gcode_quote_combination'),
    )

    quote_id = Column(Integer, ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    model_id = Column(Integer, ForeignKey('models.id'), nullable=False)
    material_id = Column(Integer, ForeignKey('materials.id'), nullable=False)
    process_id = Column(Integer, ForeignKey('processes.id'), nullable=False)
    filament_id = Column(Integer, ForeignKey('filaments.id'), nullable=False)

    estimated_weight = Column(Float, nullable=True, doc="Captured from slicer output (grams).")
    gcode = Column(Text, nullable=True, doc="Populated after the slicing job completes.")
    slice_job_id = Column(String(100), nullable=True, doc="External job identifier for the slicing workflow.")

    quote = relationship('Quote', backref=db.backref('gcodes', cascade='all, delete-orphan', lazy=True))
    model = relationship('Model')
    material = relationship('Material')
    process = relationship('Process')
    filament = relationship('Filament')

    @property
    def combination(self):
        return self.model_id, self.material_id, self.process_id, self.filament_id

    def serialize(self):
        return {
            "id": self.id,
            "quote": self.quote_id,
            "model": self.model_id,
            "material": self.material_id,
            "process": self.process_id,
            "filament": self.filament_id,
            "estimated_weight": self.estimated_weight,
            "slice_job_id": self.slice_job_id,
            "has_gcode": bool(self.gcode),
        }
