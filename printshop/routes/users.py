# routes/users.py
from flask import request, jsonify
from flask_login import login_user, logout_user, login_required
from marshmallow import ValidationError

from .. import logger
from . import users_bp
from ..models.user import User
from ..schemas.user_schemas import LoginSchema
from ..utils.helpers import first_error_message


@users_bp.route("/login", methods=["POST"])
def login():
    """
    Start a session for a customer or staff member.

    JSON Payload:
    {
      "email": "jane@example.com",
      "password": "...",
      "remember": false
    }
    """
    schema = LoginSchema()
    try:
        data = schema.load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error": first_error_message(err.messages), "errors": err.messages}), 400

    user = User.query.filter_by(email=data['email'].strip().lower()).first()
    if user is None or not user.is_active or not user.verify_password(data['password']):
        logger.warning(f"Failed login attempt for {data['email']}")
        return jsonify({"error": "Invalid email or password."}), 401

    login_user(user, remember=data['remember'])
    user.update_last_login()
    logger.info(f"User {user.id} logged in")
    return jsonify({"message": "Logged in", "user": user.serialize()}), 200


@users_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"}), 200
