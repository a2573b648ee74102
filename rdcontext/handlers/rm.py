"""``rm`` — remove a library with its snippets and vectors."""
from typing import Optional

from rdcontext.db.storage import Storage, get_storage


def rm(name: str, storage: Optional[Storage] = None) -> int:
    """Returns the number of library rows removed (0 when unknown)."""
    storage = storage or get_storage()
    return storage.libraries.delete(name.lower())
