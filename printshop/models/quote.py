import enum

from sqlalchemy import Column, Integer, Float, String, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship

from .. import db
from . import BaseModel


class QuoteStatus(enum.Enum):
    """
    Enum representing the review lifecycle of a quote.
    """
    NEW = "new"
    REVIEWING = "reviewing"
    QUOTED = "quoted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Quote(BaseModel):
    """
    A customer's request to print one or more uploaded models.

    Key Points:
    1. Exactly one of customer_id / customer_email identifies the requester.
       Authenticated requests link the user; guests leave an email.

    2. amount is always derived: the sum of the items' line_amount, in
       integer minor currency units (cents). It is recomputed on every save.

    3. Each item's filament is derived from its (material, colour) pair on
       every save and is never taken from the request.
    """

    __tablename__ = 'quotes'

    customer_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    customer = relationship('User', backref=db.backref('quotes', lazy=True))
    customer_email = Column(String(255), nullable=True, index=True,
                            doc="Used when the requester is not logged in.")

    status = Column(Enum(QuoteStatus), nullable=False, default=QuoteStatus.NEW)
    amount = Column(Integer, nullable=False, default=0, doc="Total in minor currency units.")
    currency = Column(String(3), nullable=True)
    notes = Column(Text, nullable=True, doc="Requirements, deadlines or context from the requester.")

    items = relationship(
        'QuoteItem',
        back_populates='quote',
        order_by='QuoteItem.position',
        cascade='all, delete-orphan',
        lazy=True
    )

    def to_document(self):
        """
        The persisted quote as plain data, in the shape the save hooks
        receive as ``original``.
        """
        return {
            "id": self.id,
            "customer": self.customer_id,
            "customer_email": self.customer_email,
            "status": self.status.value if self.status else None,
            "amount": self.amount,
            "currency": self.currency,
            "notes": self.notes,
            "items": [item.to_document() for item in self.items],
        }

    def serialize(self):
        data = self.to_document()
        data["items"] = [item.serialize() for item in self.items]
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data

    def __repr__(self):
        return f"<Quote {self.id} {self.status.value if self.status else ''}>"


class QuoteItem(BaseModel):
    """
    One requested print: a model in a material/colour/process, times quantity.
    """

    __tablename__ = 'quote_items'

    quote_id = Column(Integer, ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    model_id = Column(Integer, ForeignKey('models.id'), nullable=False)
    material_id = Column(Integer, ForeignKey('materials.id'), nullable=False)
    colour_id = Column(Integer, ForeignKey('colours.id'), nullable=False)
    process_id = Column(Integer, ForeignKey('processes.id'), nullable=False)
    filament_id = Column(Integer, ForeignKey('filaments.id'), nullable=True,
                         doc="Resolved from (material, colour); NULL when no active filament matches.")

    quantity = Column(Integer, nullable=False, default=1)
    grams = Column(Float, nullable=True, doc="Estimated grams required for this print (used for pricing).")
    price_override = Column(Float, nullable=True, doc="Manual per-unit price in major currency units.")
    line_amount = Column(Integer, nullable=False, default=0, doc="Subtotal in minor currency units.")

    quote = relationship('Quote', back_populates='items')
    model = relationship('Model')
    material = relationship('Material')
    colour = relationship('Colour')
    process = relationship('Process')
    filament = relationship('Filament')

    def to_document(self):
        return {
            "id": self.id,
            "model": self.model_id,
            "material": self.material_id,
            "colour": self.colour_id,
            "process": self.process_id,
            "filament": self.filament_id,
            "quantity": self.quantity,
            "grams": self.grams,
            "price_override": self.price_override,
            "line_amount": self.line_amount,
        }

    def serialize(self):
        data = self.to_document()
        data["model_name"] = self.model.filename if self.model else None
        data["material_name"] = self.material.name if self.material else None
        data["colour_name"] = self.colour.name if self.colour else None
        data["process_name"] = self.process.name if self.process else None
        return data
