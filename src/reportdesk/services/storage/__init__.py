"""
Attachment storage backends
"""

from .attachment_store import (
    AttachmentStore,
    LocalAttachmentStore,
    S3AttachmentStore,
    build_attachment_store,
    get_attachment_store,
)

__all__ = [
    "AttachmentStore",
    "LocalAttachmentStore",
    "S3AttachmentStore",
    "build_attachment_store",
    "get_attachment_store",
]
