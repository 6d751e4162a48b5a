class AssetServiceError(Exception):
    """Base error raised by the asset services; carries the HTTP status to answer with."""
    def __init__(self, message: str, status_code: int = 500, code: str = 'ASSET_SERVICE_ERROR'):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class ValidationError(AssetServiceError):
    def __init__(self, message: str, code: str = 'VALIDATION_ERROR'):
        super().__init__(message, 400, code)


class NotFoundError(AssetServiceError):
    def __init__(self, message: str, code: str = 'NOT_FOUND'):
        super().__init__(message, 404, code)
