from flask import Blueprint

# Session login for customers and staff
users_bp = Blueprint('users', __name__)

# Customer-facing catalog options
catalog_bp = Blueprint('catalog', __name__)

# Model file uploads
models_bp = Blueprint('models', __name__)

# Quote requests, lookup and staff review
quotes_bp = Blueprint('quotes', __name__)

# Import route handlers to register routes
from . import (
    users,
    catalog,
    models,
    quotes
)
