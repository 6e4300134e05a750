from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from . import BaseModel


class Model(BaseModel):
    """
    An uploaded 3D model file. Immutable once stored; the bytes live in
    UPLOAD_FOLDER under stored_filename.
    """
    __tablename__ = 'models'

    filename = Column(String(255), nullable=False, doc="Original filename as uploaded.")
    stored_filename = Column(String(255), unique=True, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=True)

    customer_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    customer = relationship('User')

    def serialize(self):
        return {
            "id": self.id,
            "filename": self.filename,
            "stored_filename": self.stored_filename,
            "size": self.size,
            "mime_type": self.mime_type,
            "customer": self.customer_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Model {self.filename}>"
