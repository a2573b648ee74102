"""Function-level contracts behind the ``add/get/list/rm`` commands."""
from .add import add
from .get import format_snippet, get, get_with_stats, health
from .list import list_libraries
from .rm import rm

__all__ = ["add", "format_snippet", "get", "get_with_stats", "health", "list_libraries", "rm"]
