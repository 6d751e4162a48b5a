"""
Upload Validation Service

Checks asset uploads (extension allow-list, size ceiling) before anything is
written to disk or the database, and strips markup from free-text metadata.
"""

import os
import re
import logging
from pathlib import Path
from typing import Optional, Tuple
import bleach
from flask import current_app
from services.errors import ValidationError

logger = logging.getLogger(__name__)

# extension -> file_type stored on the row
ALLOWED_ASSET_TYPES = {
    '.pdf': 'PDF',
    '.doc': 'DOC',
    '.docx': 'DOCX',
    '.xls': 'XLSX',
    '.xlsx': 'XLSX',
    '.ppt': 'PPT',
    '.pptx': 'PPTX',
    '.txt': 'TXT',
    '.csv': 'CSV',
}

DEFAULT_MAX_ASSET_FILE_SIZE = 100 * 1024 * 1024  # 100MB


class FileValidationService:
    """Validation for uploaded asset files and their text metadata"""

    def __init__(self, max_size: Optional[int] = None):
        if max_size is None:
            max_size = current_app.config.get('MAX_ASSET_FILE_SIZE', DEFAULT_MAX_ASSET_FILE_SIZE)
        self.max_size = max_size

    def validate_upload(self, upload) -> Tuple[str, int]:
        """
        Validate a werkzeug FileStorage upload.

        Returns:
            Tuple of (file_type, size_in_bytes)

        Raises:
            ValidationError: missing file, unsupported extension or oversized content
        """
        if upload is None or not upload.filename:
            raise ValidationError("No file provided", 'FILE_REQUIRED')

        file_ext = Path(upload.filename).suffix.lower()
        file_type = ALLOWED_ASSET_TYPES.get(file_ext)
        if file_type is None:
            raise ValidationError(
                f"File type '{file_ext or upload.filename}' is not allowed. "
                f"Allowed: {', '.join(sorted(ALLOWED_ASSET_TYPES))}",
                'FILE_TYPE_NOT_ALLOWED'
            )

        size = self._measure(upload)
        if size > self.max_size:
            max_size_mb = self.max_size / (1024 * 1024)
            current_size_mb = size / (1024 * 1024)
            raise ValidationError(
                f"File size ({current_size_mb:.1f}MB) exceeds maximum allowed size ({max_size_mb:.1f}MB)",
                'FILE_TOO_LARGE'
            )
        return file_type, size

    @staticmethod
    def _measure(upload) -> int:
        stream = upload.stream
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
        return size

    @staticmethod
    def clean_text(value: Optional[str]) -> Optional[str]:
        """Strip any markup from user supplied metadata (titles, descriptions, tags)."""
        if value is None:
            return None
        cleaned = bleach.clean(str(value), tags=[], attributes={}, strip=True, strip_comments=True)
        cleaned = re.sub(r'javascript:|vbscript:', '', cleaned, flags=re.IGNORECASE)
        return cleaned.strip()
