"""
Uploaded image handling for occurrence attachments.

The HTTP layer hands the service plain byte payloads with their declared
metadata; this module decides whether a payload is an acceptable image.
"""

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow format name -> (stored content type, file extension)
ACCEPTED_IMAGE_FORMATS = {
    "JPEG": ("image/jpeg", "jpg"),
    # JPEG with a multi-picture segment, as written by many phone cameras
    "MPO": ("image/jpeg", "jpg"),
    "PNG": ("image/png", "png"),
}
ACCEPTED_EXTENSIONS_LABEL = "jpeg, png, jpg"


@dataclass
class UploadedFile:
    """An uploaded file already read into memory"""
    filename: Optional[str]
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class InspectedImage:
    """Result of decoding an upload"""
    image_format: Optional[str]

    @property
    def is_image(self) -> bool:
        return self.image_format is not None

    @property
    def is_accepted(self) -> bool:
        return self.image_format in ACCEPTED_IMAGE_FORMATS

    @property
    def content_type(self) -> Optional[str]:
        if not self.is_accepted:
            return None
        return ACCEPTED_IMAGE_FORMATS[self.image_format][0]

    @property
    def extension(self) -> Optional[str]:
        if not self.is_accepted:
            return None
        return ACCEPTED_IMAGE_FORMATS[self.image_format][1]


def inspect_image(data: bytes) -> InspectedImage:
    """Decode the payload header and verify it is a well-formed image"""
    if not data:
        return InspectedImage(image_format=None)
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        logger.debug(f"Upload rejected by image decoder: {e}")
        return InspectedImage(image_format=None)
    return InspectedImage(image_format=image_format)


def validate_image_upload(
    upload: UploadedFile, field: str, max_bytes: int
) -> Tuple[List[str], InspectedImage]:
    """
    Check one upload against the attachment rules.

    Returns every violated rule as a message, together with the decoded
    image; an empty message list means the upload is acceptable. Oversized
    payloads are not decoded and only report the size rule.
    """
    if upload.size > max_bytes:
        return (
            [f"The {field} must not be greater than {max_bytes // 1024} kilobytes."],
            InspectedImage(image_format=None),
        )

    messages = []
    inspected = inspect_image(upload.data)
    if not inspected.is_image:
        messages.append(f"The {field} must be an image.")
    if not inspected.is_accepted:
        messages.append(f"The {field} must be a file of type: {ACCEPTED_EXTENSIONS_LABEL}.")
    return messages, inspected
