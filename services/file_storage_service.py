# services/file_storage_service.py
import uuid
from pathlib import Path
from typing import Tuple
from werkzeug.utils import secure_filename
from flask import current_app


class FileStorageService:
    def __init__(self, base_path: str = None):
        """
        Local disk storage for asset binaries.

        Files live under <root>/assets/<bu>/<product>/<folder>/<uuid><ext>; the
        stored name never derives from user input other than the extension.
        """
        self.base_path = Path(base_path or current_app.config.get('STORAGE_ROOT', 'storage'))
        self.assets_root = self.base_path / "assets"

    def get_folder_physical_path(self, folder) -> Path:
        return self.assets_root.joinpath(*folder.storage_segments())

    def save_file(self, upload, folder) -> Tuple[str, str]:
        """
        Persist an upload for the given folder.

        Returns:
            Tuple[stored_file_name, relative_path] relative to the storage root
        """
        ext = Path(secure_filename(upload.filename) or upload.filename).suffix.lower()
        stored_name = f"{uuid.uuid4().hex}{ext}"

        folder_path = self.get_folder_physical_path(folder)
        folder_path.mkdir(parents=True, exist_ok=True)
        file_path = folder_path / stored_name

        try:
            upload.stream.seek(0)
            upload.save(str(file_path))
        except OSError as e:
            current_app.logger.error(f"Error saving asset file: {str(e)}")
            raise

        return stored_name, file_path.relative_to(self.base_path).as_posix()

    def resolve(self, relative_path: str) -> Path:
        """Absolute path of a stored file; refuses paths escaping the storage root."""
        root = self.base_path.resolve()
        full_path = (root / relative_path).resolve()
        if root not in full_path.parents:
            raise FileNotFoundError(relative_path)
        return full_path

    def exists(self, relative_path: str) -> bool:
        try:
            return self.resolve(relative_path).is_file()
        except FileNotFoundError:
            return False

    def delete_file(self, relative_path: str) -> bool:
        """Remove a stored file; used to clean up after a failed insert."""
        try:
            full_path = self.resolve(relative_path)
            if full_path.is_file():
                full_path.unlink()
                return True
            return False
        except OSError as e:
            current_app.logger.error(f"Error deleting file {relative_path}: {str(e)}")
            return False
