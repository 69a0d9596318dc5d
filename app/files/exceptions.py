# app/files/exceptions.py

"""
Errors raised by the platform file tree.
"""


class FileStorageError(Exception):
    """Base exception for file tree operations"""
    def __init__(self, message: str, path: str = None):
        self.message = message
        self.path = path
        super().__init__(self.message)


class NotFoundError(FileStorageError):
    """Raised when a path or id does not resolve to a node"""
    def __init__(self, path: str):
        super().__init__(message=f"Node not found: {path}", path=path)


class NotPermittedError(FileStorageError):
    """Raised when a write is refused (permissions, quota, disk full, bad name)"""
    def __init__(self, path: str, reason: str = "not permitted"):
        super().__init__(message=f"Cannot write {path}: {reason}", path=path)
        self.reason = reason


class AlreadyExistsError(NotPermittedError):
    """Raised when a node with the same name already exists in the folder"""
    def __init__(self, path: str):
        super().__init__(path, "already exists")
