import logging
import os
import uuid

from flask import current_app, url_for
from werkzeug.utils import secure_filename

from wedding.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}


class ImageStore:
    """Keeps uploaded images on local disk and hands back their public URL."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.extensions['image_store'] = self

    def save(self, file_storage, prefix='images'):
        if file_storage is None or not file_storage.filename:
            raise ValidationError("Image file is required")
        if not (file_storage.mimetype or '').startswith('image/'):
            raise ValidationError("Only image files are allowed")

        ext = os.path.splitext(secure_filename(file_storage.filename))[1].lower()
        if ext not in ALLOWED_EXTS:
            raise ValidationError("Only image files are allowed")

        name = f"{uuid.uuid4().hex}{ext}"
        target_dir = os.path.join(current_app.config['UPLOAD_FOLDER'], prefix)
        os.makedirs(target_dir, exist_ok=True)
        file_storage.save(os.path.join(target_dir, name))
        logger.info("Stored image %s/%s", prefix, name)
        return url_for('main.uploaded_file', filename=f"{prefix}/{name}")


def get_image_store():
    return current_app.extensions['image_store']
