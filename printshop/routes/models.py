# routes/models.py
from flask import request, jsonify

from .. import logger
from . import models_bp
from ..services.model_service import ModelService
from ..utils.helpers import request_user


@models_bp.route("", methods=["POST"])
def upload_model():
    """
    Upload one model file (multipart, field name ``file``).

    Response 201
    {
      "message": "Model uploaded",
      "doc": {"id": 12, "filename": "bracket.stl", "size": 48213, ...}
    }
    """
    try:
        model = ModelService.store_upload(request.files.get('file'), request_user())
    except ValueError as e:
        logger.warning(f"Model upload rejected: {str(e)}")
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Model upload failed: {str(e)}")
        return jsonify({"error": "Failed to upload the model."}), 500

    return jsonify({"message": "Model uploaded", "doc": model.serialize()}), 201
