"""Error taxonomy shared by the core, the adapters and the CLI."""


class ValidationError(ValueError):
    """Raised when input is malformed (bad pattern, bad date, bad HH:mm)."""

    pass


class StorageError(RuntimeError):
    """Raised when a storage backend read or write fails."""

    pass


class TodoNotFoundError(StorageError):
    """Raised when a todo id is unknown to the store."""

    def __init__(self, todo_id: str | int):
        super().__init__(f"Todo not found: {todo_id}")
        self.todo_id = todo_id
