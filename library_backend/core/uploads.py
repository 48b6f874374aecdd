"""Cover image validation and storage on local disk."""

import logging
import os
import random
import time
from dataclasses import dataclass

from fastapi import UploadFile

from library_backend.core import config
from library_backend.core.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif'}
ALLOWED_CONTENT_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif'}
COVER_FIELD = 'coverImage'
READ_CHUNK_BYTES = 64 * 1024


@dataclass
class CoverImage:
    filename: str
    extension: str
    content: bytes


@dataclass
class StoredCover:
    path: str
    url: str


def has_upload(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)


def _describe_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f'{size // (1024 * 1024)}MB'
    return f'{size} bytes'


def read_cover_image(upload: UploadFile, max_bytes: int | None = None) -> CoverImage:
    """Validate an uploaded cover and load it into memory.

    The extension and the declared content type must both name an allowed
    image format. Nothing is written to disk here.
    """
    limit = max_bytes or config.MAX_COVER_IMAGE_BYTES
    extension = os.path.splitext(upload.filename or '')[1].lower()
    content_type = (upload.content_type or '').split(';', 1)[0].strip().lower()

    if extension not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError.for_field(COVER_FIELD, 'Only image files are allowed (jpeg, jpg, png, gif)')

    chunks = []
    total = 0
    while True:
        chunk = upload.file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise ValidationError.for_field(
                COVER_FIELD,
                f'Cover image must be {_describe_size(limit)} or smaller.',
            )
        chunks.append(chunk)

    return CoverImage(filename=upload.filename, extension=extension, content=b''.join(chunks))


def build_cover_filename(extension: str) -> str:
    unique_suffix = f'{int(time.time() * 1000)}-{random.randint(0, 10**9)}'
    return f'book-cover-{unique_suffix}{extension}'


def save_cover_image(cover: CoverImage, upload_dir: str | None = None) -> StoredCover:
    directory = upload_dir or config.UPLOAD_DIR
    os.makedirs(directory, exist_ok=True)

    filename = build_cover_filename(cover.extension)
    path = os.path.join(directory, filename)
    with open(path, 'wb') as handle:
        handle.write(cover.content)

    logger.info('Stored cover image %s (%d bytes)', filename, len(cover.content))
    return StoredCover(path=path, url=f'{config.UPLOAD_URL_PREFIX}/{filename}')


def discard_cover_image(stored: StoredCover | None) -> None:
    if stored is None:
        return
    try:
        os.remove(stored.path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception('Error deleting uploaded file %s', stored.path)
