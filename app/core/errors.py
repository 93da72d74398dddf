"""
Exception types raised by the progression and reset services
"""


class ChronosError(Exception):
    """Base class for progression / reset errors"""


class ProfileNotFoundError(ChronosError):
    """No profile exists for the user"""

    def __init__(self, user_id: str):
        super().__init__(f"Profile not found: {user_id}")
        self.user_id = user_id


class PathNotFoundError(ChronosError):
    """No active path instance with the given id"""

    def __init__(self, path_id: str):
        super().__init__(f"Path not found: {path_id}")
        self.path_id = path_id


class PersistenceError(ChronosError):
    """A write to the backing store failed"""

    def __init__(self, operation: str, detail: str = ""):
        message = f"{operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.operation = operation
