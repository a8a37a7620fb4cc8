"""
Attachment pipeline.

Turns raw file blobs into ``Attachment`` records: assigns an id that does not
depend on the file name, classifies the MIME type and, for images, derives a
thumbnail URL. The transfer step is simulated with a configurable delay and
is independent of the persistence gateway.
"""

import asyncio
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Union

from campus_chat.messaging.exceptions import UploadValidationError
from campus_chat.messaging.types import Attachment
from campus_chat.utils.logger_config import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class UploadedFile:
    """A file picked in the composer, before upload."""
    file_name: str
    content: Optional[bytes]
    file_type: Optional[str] = None

    @property
    def file_size(self) -> int:
        return len(self.content) if self.content is not None else 0


def _new_file_id() -> str:
    return f"file-{uuid.uuid4().hex}"


class AttachmentPipeline:
    """Uploads files and produces attachment records."""

    def __init__(
        self,
        upload_base_path: str = "/uploads",
        transfer_delay: float = 0.5,
        max_upload_bytes: int = 25 * 1024 * 1024,
        id_factory: Callable[[], str] = _new_file_id,
    ):
        """
        Initialize the pipeline

        Args:
            upload_base_path: URL prefix for stored files
            transfer_delay: Simulated transfer latency in seconds
            max_upload_bytes: Largest accepted file
            id_factory: Produces globally unique attachment ids
        """
        self.upload_base_path = upload_base_path.rstrip("/")
        self.transfer_delay = transfer_delay
        self.max_upload_bytes = max_upload_bytes
        self._id_factory = id_factory

    def classify(self, upload: UploadedFile) -> str:
        """Return the declared MIME type, else a guess from the file name."""
        if upload.file_type:
            return upload.file_type
        guessed, _ = mimetypes.guess_type(upload.file_name)
        return guessed or DEFAULT_MIME_TYPE

    def validate(self, upload: UploadedFile) -> None:
        """
        Reject files that cannot be uploaded

        Raises:
            UploadValidationError: If the name is empty, the content is unreadable
                or the file is too large
        """
        if not upload.file_name or not upload.file_name.strip():
            raise UploadValidationError("File name is required")
        if upload.content is None:
            raise UploadValidationError(f"Could not read file: {upload.file_name}")
        if upload.file_size > self.max_upload_bytes:
            raise UploadValidationError(
                f"File {upload.file_name} is {upload.file_size} bytes, "
                f"limit is {self.max_upload_bytes}"
            )

    async def upload(self, upload: UploadedFile) -> Attachment:
        """
        Upload one file

        Args:
            upload: File to upload

        Returns:
            Attachment with a fresh id; ``thumbnail_url`` is set only for images

        Raises:
            UploadValidationError: If the file is rejected
        """
        self.validate(upload)
        file_type = self.classify(upload)
        file_id = self._id_factory()
        stored_name = f"{file_id}-{upload.file_name}"

        attachment = Attachment(
            id=file_id,
            file_name=upload.file_name,
            file_type=file_type,
            file_size=upload.file_size,
            file_url=f"{self.upload_base_path}/{stored_name}",
            thumbnail_url=(
                f"{self.upload_base_path}/thumbnails/{stored_name}"
                if file_type.startswith("image/") else None
            ),
        )

        await self._transfer(upload, attachment)
        logger.info(f"Uploaded {attachment.file_name} as {attachment.id} ({attachment.file_type})")
        return attachment

    async def _transfer(self, upload: UploadedFile, attachment: Attachment) -> None:
        if self.transfer_delay:
            await asyncio.sleep(self.transfer_delay)

    async def upload_many(self, uploads: Iterable[UploadedFile]) -> List[Attachment]:
        """Upload files one after another, returning attachments in submission order."""
        attachments = []
        for upload in uploads:
            attachments.append(await self.upload(upload))
        return attachments

    async def upload_path(self, path: Union[str, Path], file_type: Optional[str] = None) -> Attachment:
        """
        Upload a file from the local filesystem

        Raises:
            UploadValidationError: If the path cannot be read
        """
        file_path = Path(path)
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise UploadValidationError(f"Could not read file {file_path}: {e}") from e
        return await self.upload(UploadedFile(file_name=file_path.name, content=content, file_type=file_type))


class PendingAttachments:
    """Attachments uploaded in the composer and waiting to be sent."""

    def __init__(self):
        self._items: List[Attachment] = []

    def add(self, attachments: Iterable[Attachment]) -> None:
        self._items.extend(attachments)

    def remove(self, attachment_id: str) -> bool:
        """Remove one pending attachment by id; return False if it was not pending."""
        before = len(self._items)
        self._items = [a for a in self._items if a.id != attachment_id]
        return len(self._items) != before

    def discard(self, attachment_ids: Iterable[str]) -> None:
        ids = set(attachment_ids)
        self._items = [a for a in self._items if a.id not in ids]

    def clear(self) -> None:
        self._items = []

    @property
    def items(self) -> List[Attachment]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Attachment]:
        return iter(list(self._items))


def attachment_icon(file_type: str) -> str:
    """
    Pick the icon key for a non-image attachment.

    Returns one of ``image``, ``pdf``, ``spreadsheet``, ``document`` or ``file``.
    """
    file_type = (file_type or "").lower()
    if file_type.startswith("image/"):
        return "image"
    if "pdf" in file_type:
        return "pdf"
    # spreadsheet MIME types also contain "officedocument"
    if "sheet" in file_type or "excel" in file_type:
        return "spreadsheet"
    if "word" in file_type or "document" in file_type or file_type.startswith("text/"):
        return "document"
    return "file"


def format_file_size(size: int) -> str:
    return f"{size / 1024:.1f} KB"


def attachment_label(attachment: Attachment) -> str:
    """Display label such as ``notes.pdf (239.3 KB)``."""
    return f"{attachment.file_name} ({format_file_size(attachment.file_size)})"
