import os
import shutil
import uuid

from utils import config


def store_upload(source_path: str, upload_dir: str = "") -> str:
    """
    Copy an image into the upload directory under a fresh name and return the
    path to store in products.image. File contents are not inspected.
    """
    upload_dir = upload_dir or config.UPLOAD_DIR
    os.makedirs(upload_dir, exist_ok=True)
    ext = os.path.splitext(source_path)[1].lower()
    filename = f"p_{uuid.uuid4().hex[:13]}{ext}"
    shutil.copyfile(source_path, os.path.join(upload_dir, filename))
    return os.path.join(upload_dir, filename).replace(os.sep, "/")


def resolve_image(value: str, upload_dir: str = "") -> str:
    """An existing local file gets uploaded; anything else is kept as a URI."""
    value = (value or "").strip()
    if value and os.path.isfile(value):
        return store_upload(value, upload_dir)
    return value
