# services/model_service.py
import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from .. import logger
from ..models.model_file import Model

UNSUPPORTED_MODEL_TYPE = "Unsupported file type. Upload an STL, OBJ or 3MF model."


def allowed_model_file(filename: str) -> bool:
    if not filename or '.' not in filename:
        return False
    extension = filename.rsplit('.', 1)[1].lower()
    return extension in current_app.config.get('ALLOWED_MODEL_EXTENSIONS', {'stl', 'obj', '3mf'})


def build_stored_filename(filename: str) -> str:
    """Unique on-disk name that keeps the original extension"""
    safe_name = secure_filename(filename) or 'model'
    return f"{uuid.uuid4().hex}-{safe_name}"


class ModelService:
    @staticmethod
    def store_upload(file_storage, user=None) -> Model:
        """
        Save an uploaded model file and record it.

        Args:
            file_storage: werkzeug FileStorage from the multipart ``file`` field
            user: owner of the upload, if authenticated
        Returns:
            Model: the stored model
        Raises:
            ValueError: missing file, empty file or unsupported extension
        """
        if file_storage is None or not file_storage.filename:
            raise ValueError("Choose a model file to upload.")

        filename = file_storage.filename
        if not allowed_model_file(filename):
            raise ValueError(UNSUPPORTED_MODEL_TYPE)

        upload_folder = current_app.config['UPLOAD_FOLDER']
        os.makedirs(upload_folder, exist_ok=True)

        stored_filename = build_stored_filename(filename)
        path = os.path.join(upload_folder, stored_filename)
        file_storage.save(path)

        size = os.path.getsize(path)
        if size == 0:
            os.remove(path)
            raise ValueError("The uploaded model is empty.")

        model = Model(
            filename=filename,
            stored_filename=stored_filename,
            size=size,
            mime_type=file_storage.mimetype or 'application/octet-stream',
            customer_id=user.id if user is not None else None
        )

        try:
            model.save()
        except Exception as e:
            logger.error(f"Error saving model {filename}: {str(e)}")
            os.remove(path)
            raise

        logger.info(f"Stored model {model.id}: {filename} ({size} bytes) as {stored_filename}")
        return model
