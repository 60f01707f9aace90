from typing import List, Optional


class APIError(Exception):
    """Unified error class for all external API clients."""

    def __init__(
        self,
        source: str,
        code: str,
        message: str,
        details: Optional[str] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.source = source
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "code": self.code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class DataSourceError(Exception):
    """Raised when a local CSV source cannot be opened, parsed or lacks columns."""

    def __init__(self, message: str, status_code: int = 500, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.missing = missing

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            **({"missing": self.missing} if self.missing else {}),
        }


class BadRequest(Exception):
    """Invalid or missing query input."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
