# models/user.py
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .. import db, logger
from . import BaseModel


class Role(BaseModel):
    """Named permission set; 'all' grants every permission"""
    __tablename__ = 'roles'

    name = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.String(255))
    permissions = db.Column(db.JSON, nullable=False, default=list)

    def grants(self, permission):
        return bool(self.permissions) and ('all' in self.permissions or permission in self.permissions)

    def serialize(self):
        return {'id': self.id, 'name': self.name, 'permissions': self.permissions}


class User(UserMixin, BaseModel):
    """
    A storefront account. Customers own the quotes they file while logged
    in; staff (the manage_quotes permission) review and price any quote.
    """
    __tablename__ = 'users'

    email = db.Column(db.String(120), unique=True, nullable=False, index=True,
                      doc="Stored lowercase; login and quote lookup compare lowercase.")
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(50))
    last_name = db.Column(db.String(50))

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime)

    role_id = db.Column(db.Integer, db.ForeignKey('roles.id'), nullable=True)
    role = db.relationship('Role', backref=db.backref('users', lazy=True))

    @property
    def password(self):
        raise AttributeError('password is write-only')

    @password.setter
    def password(self, password):
        self.password_hash = generate_password_hash(password)

    def verify_password(self, password):
        return check_password_hash(self.password_hash, password)

    def update_last_login(self):
        self.last_login = datetime.now()
        self.save()

    def has_permission(self, permission):
        return self.role is not None and self.role.grants(permission)

    @property
    def is_staff(self):
        return self.has_permission('manage_quotes')

    def serialize(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'role': self.role.name if self.role else None,
            'is_staff': self.is_staff,
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }

    def __repr__(self):
        return f'<User {self.email}>'


DEFAULT_ROLES = (
    ('admin', 'Full access', ['all']),
    ('staff', 'Reviews, prices and prepares quotes', ['manage_quotes', 'view_gcodes', 'view_own_quotes']),
    ('customer', 'Files quotes and follows their status', ['view_own_quotes']),
)


def init_roles(app):
    """Create any default role that is missing; existing roles are left alone"""
    existing = {name for (name,) in db.session.query(Role.name)}
    missing = [role for role in DEFAULT_ROLES if role[0] not in existing]
    if not missing:
        return

    for name, description, permissions in missing:
        db.session.add(Role(name=name, description=description, permissions=permissions))
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Could not seed roles {[role[0] for role in missing]}: {str(e)}")
        raise

    logger.info(f"Seeded roles: {', '.join(role[0] for role in missing)}")
