"""GitHub repository source used by the ingestion pipeline."""
from .client import (
    GitHubClient,
    RepositoryFile,
    RepositoryInfo,
    build_ref,
    is_documentation_file,
    is_in_target_folders,
    parse_library_name,
)

__all__ = [
    "GitHubClient",
    "RepositoryFile",
    "RepositoryInfo",
    "build_ref",
    "is_documentation_file",
    "is_in_target_folders",
    "parse_library_name",
]
