"""Attachment upload, classification and display helpers."""

from .pipeline import (
    AttachmentPipeline,
    PendingAttachments,
    UploadedFile,
    attachment_icon,
    attachment_label,
    format_file_size,
)

__all__ = [
    'AttachmentPipeline',
    'PendingAttachments',
    'UploadedFile',
    'attachment_icon',
    'attachment_label',
    'format_file_size',
]
