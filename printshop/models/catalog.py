import enum

from sqlalchemy import Column, Integer, String, Float, Boolean, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship

from .. import db
from . import BaseModel


class ColourFinish(enum.Enum):
    REGULAR = "regular"
    MATTE = "matte"
    SILK = "silk"


class ColourType(enum.Enum):
    SOLID = "solid"
    CO_EXTRUSION = "co-extrusion"
    GRADIENT = "gradient"


class Material(BaseModel):
    """
    A printable material such as PLA or PETG.

    price_per_gram is optional; when it is NULL, pricing falls back to the
    global Settings price per gram.
    """
    __tablename__ = 'materials'

    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True, doc="Short public blurb shown in the material library.")
    price_per_gram = Column(Float, nullable=True, doc="Optional override of the default price per gram.")
    config = Column(db.JSON, nullable=False, default=dict, doc="Printer settings, e.g. {'nozzleTemp': 210}.")

    filaments = relationship('Filament', back_populates='material', lazy=True)

    def serialize(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_per_gram": self.price_per_gram,
            "config": self.config,
        }

    def __repr__(self):
        return f"<Material {self.name}>"


class Colour(BaseModel):
    __tablename__ = 'colours'

    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    finish = Column(Enum(ColourFinish), nullable=False, default=ColourFinish.REGULAR)
    type = Column(Enum(ColourType), nullable=False, default=ColourType.SOLID)

    swatches = relationship(
        'ColourSwatch',
        order_by='ColourSwatch.position',
        cascade='all, delete-orphan',
        lazy=True
    )
    filaments = relationship('Filament', back_populates='colour', lazy=True)

    @property
    def hexcodes(self):
        return [swatch.hexcode for swatch in self.swatches if swatch.hexcode]

    def serialize(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "finish": self.finish.value if self.finish else None,
            "type": self.type.value if self.type else None,
            "swatches": self.hexcodes,
        }

    def __repr__(self):
        return f"<Colour {self.name}>"


class ColourSwatch(BaseModel):
    __tablename__ = 'colour_swatches'

    colour_id = Column(Integer, ForeignKey('colours.id'), nullable=False)
    hexcode = Column(String(9), nullable=False)
    position = Column(Integer, nullable=False, default=0)


class Process(BaseModel):
    """
    A print process (e.g. 0.2mm standard). Inactive processes are hidden from
    customer-facing selection without deleting them.
    """
    __tablename__ = 'processes'

    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    config = Column(db.JSON, nullable=False, default=dict)

    def serialize(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "active": self.active,
        }


class Vendor(BaseModel):
    __tablename__ = 'vendors'

    name = Column(String(100), unique=True, nullable=False)
    website = Column(String(255), nullable=True)

    def serialize(self):
        return {"id": self.id, "name": self.name, "website": self.website}


class Filament(BaseModel):
    """
    A purchasable (material, colour) combination from a vendor.

    At most one active filament should exist per (material, colour) pair.
    This is a convention, not a constraint; resolution takes the oldest
    active match.
    """
    __tablename__ = 'filaments'

    name = Column(String(150), unique=True, nullable=False)
    active = Column(Boolean, nullable=False, default=True, index=True)

    material_id = Column(Integer, ForeignKey('materials.id'), nullable=False, index=True)
    colour_id = Column(Integer, ForeignKey('colours.id'), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey('vendors.id'), nullable=False)
    config = Column(db.JSON, nullable=False, default=dict, doc="Spool weight, print profiles, etc.")

    material = relationship('Material', back_populates='filaments')
    colour = relationship('Colour', back_populates='filaments')
    vendor = relationship('Vendor', backref=db.backref('filaments', lazy=True))

    def serialize(self):
        return {
            "id": self.id,
            "name": self.name,
            "active": self.active,
            "material_id": self.material_id,
            "colour_id": self.colour_id,
            "vendor_id": self.vendor_id,
        }

    def __repr__(self):
        return f"<Filament {self.name}>"
