"""``list`` — libraries that have been indexed."""
from typing import List, Optional

from rdcontext.db.models import Library
from rdcontext.db.storage import Storage, get_storage


def list_libraries(storage: Optional[Storage] = None) -> List[Library]:
    storage = storage or get_storage()
    return storage.libraries.list()
