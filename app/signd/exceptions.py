# app/signd/exceptions.py

"""
Custom exceptions for the signd.it integration.

Every exception carries the HTTP status it maps to and, where the frontend
localizes the failure, a stable machine-readable error code.
"""

from typing import Optional

from fastapi import status
from fastapi.responses import JSONResponse

ERROR_STORAGE = "STORAGE_ERROR"
ERROR_SIGND_UNREACHABLE = "SIGND_UNREACHABLE"
ERROR_FILE_NOT_FOUND = "FILE_NOT_FOUND"


class SigndBaseException(Exception):
    """Base exception for the signd module"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ProcessNotFoundException(SigndBaseException):
    """Raised when no process record exists for a process id"""
    def __init__(self, process_id: str):
        super().__init__(
            message=f"Process {process_id} not found",
            status_code=status.HTTP_404_NOT_FOUND
        )


class DuplicateProcessException(SigndBaseException):
    """Raised when a process record with the same process id already exists"""
    def __init__(self, process_id: str):
        super().__init__(
            message=f"Process {process_id} is already tracked",
            status_code=status.HTTP_409_CONFLICT
        )


class FileNotFoundException(SigndBaseException):
    """Raised when a file id does not resolve inside the user's folder"""
    def __init__(self, file_id: int):
        super().__init__(
            message=f"File {file_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=ERROR_FILE_NOT_FOUND
        )


class UnauthenticatedException(SigndBaseException):
    """Raised when an operation needs a user and there is none"""
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class InvalidArgumentException(SigndBaseException):
    """Raised when a request argument is unusable"""
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST
        )


class StorageException(SigndBaseException):
    """Raised when the signed PDF cannot be written (disk full, quota, permissions)"""
    def __init__(self, message: str):
        super().__init__(
            message=f"Could not save the signed document: {message}",
            status_code=status.HTTP_507_INSUFFICIENT_STORAGE,
            error_code=ERROR_STORAGE
        )


class FilenameCollisionException(SigndBaseException):
    """Raised when no free filename is found for the signed PDF"""
    def __init__(self, folder: str, base_name: str):
        super().__init__(
            message=f"No free filename for {base_name} in {folder}",
            status_code=status.HTTP_409_CONFLICT
        )


class UpstreamUnavailableException(SigndBaseException):
    """Base for failures of the signd.it API"""
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=error_code
        )


class SigndUnreachableException(UpstreamUnavailableException):
    """Raised when the signd.it API cannot be reached at all"""
    def __init__(self, message: str):
        super().__init__(
            message=f"Cannot reach signd.it: {message}",
            error_code=ERROR_SIGND_UNREACHABLE
        )


class SigndApiException(UpstreamUnavailableException):
    """Raised when the signd.it API answers with an error status"""
    def __init__(self, upstream_status: int, message: str):
        self.upstream_status = upstream_status
        super().__init__(message=f"signd.it API error ({upstream_status}): {message}")


class InvalidSigndResponseException(SigndBaseException):
    """Raised when a signd.it answer lacks a required field"""
    def __init__(self, field: str):
        super().__init__(
            message=f"Invalid response from signd.it: missing {field}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


def convert_to_json_response(exc: SigndBaseException) -> JSONResponse:
    """Convert custom exception to the JSON error body the frontend reads"""
    content = {"error": exc.message}
    if exc.error_code:
        content["errorCode"] = exc.error_code
    return JSONResponse(status_code=exc.status_code, content=content)
