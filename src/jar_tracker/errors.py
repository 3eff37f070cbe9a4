"""Exception types raised by the Jar Tracker engine."""


class JarTrackerError(Exception):
    """Base class for all Jar Tracker errors."""


class ValidationError(JarTrackerError):
    """Raised when caller input is invalid."""


class InvalidArgumentError(ValidationError):
    """Raised when an argument is out of its accepted range."""


class DuplicateNameError(ValidationError):
    """Raised when a name collides with an existing entry (case-insensitive)."""

    def __init__(self, entity: str, name: str):
        self.entity = entity
        self.name = name
        super().__init__(f"{entity} '{name}' already exists")


class EntityInUseError(ValidationError):
    """Raised when deleting a taxonomy entry that is still referenced."""

    def __init__(self, entity: str, name: str, count: int, referrer: str):
        self.entity = entity
        self.name = name
        self.count = count
        super().__init__(
            f"Cannot delete {entity.lower()} '{name}' because {count} "
            f"{referrer} are still using it; choose a replacement to reassign them"
        )


class ProtectedEntityError(JarTrackerError):
    """Raised when attempting to modify or delete a system default."""

    def __init__(self, entity: str, name: str):
        self.entity = entity
        self.name = name
        super().__init__(f"{entity} '{name}' is a built-in default and cannot be changed")


class NotFoundError(JarTrackerError):
    """Raised when an entity id does not exist."""

    def __init__(self, entity: str, entity_id: int | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID '{entity_id}' not found")


class StorageUnavailableError(JarTrackerError):
    """Raised when the database handle cannot be re-established."""


class TransactionError(JarTrackerError):
    """Raised after a multi-row write was rolled back in full."""
