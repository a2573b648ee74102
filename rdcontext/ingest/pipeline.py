"""Ingestion pipeline: GitHub docs → snippets → embeddings → DuckDB.

One ``add`` run moves through these stages::

    RESOLVED → FILES_LISTED → EXTRACTED → EMBEDDED → COMMITTED

Nothing persists between runs; a retry starts again from RESOLVED.

Network phases run as bounded concurrent batches (``file_batch_size``
files, ``embedding_batch_size`` snippets at a time).  A file that cannot be
fetched or extracted contributes no snippets, and a snippet that cannot be
embedded is dropped.  Neither aborts the run.  A missing API key or a
failed metadata commit does abort it.

The commit phase is strictly ordered for the library: old snippets are
deleted, the registry row is replaced, then new snippet metadata and
vectors are written.
"""
import asyncio
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional, Sequence

from rdcontext.db.library_registry import LibraryRegistry
from rdcontext.db.models import Library, LibraryStats, SnippetCreate
from rdcontext.db.snippet_store import SnippetStore
from rdcontext.embeddings.normalizer import CANONICAL_DIM
from rdcontext.embeddings.service import EmbeddingService
from rdcontext.errors import MissingApiKeyError, UnsupportedEmbeddingDimensionError
from rdcontext.extraction.extractor import ExtractedSnippet, SnippetExtractor
from rdcontext.github.client import (
    DOC_EXTENSIONS,
    GitHubClient,
    RepositoryFile,
    build_ref,
    parse_library_name,
)

logger = logging.getLogger(__name__)

FILE_BATCH_SIZE = 10
EMBEDDING_BATCH_SIZE = 5


async def _gather_batch(coros) -> list:
    """Run one batch to completion, then re-raise its first failure."""
    results = await asyncio.gather(*coros, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class IngestionStage(str, Enum):
    RESOLVED = "resolved"
    FILES_LISTED = "files_listed"
    EXTRACTED = "extracted"
    EMBEDDED = "embedded"
    COMMITTED = "committed"


@dataclass
class AddOptions:
    """What to index: ``owner/repo`` plus an optional branch or tag."""

    name: str
    branch: Optional[str] = None
    tag: Optional[str] = None
    folders: list[str] = field(default_factory=list)
    token: Optional[str] = None


@dataclass
class IngestionSummary:
    library: str
    snippets: int
    provider: str
    model: str
    original_dimensions: int
    normalized_dimensions: int
    files: int
    stats: LibraryStats
    stage: IngestionStage = IngestionStage.COMMITTED

    def to_dict(self) -> dict:
        d = asdict(self)
        d["stage"] = self.stage.value
        return d


@dataclass
class _FileSnippet:
    path: str
    snippet: ExtractedSnippet


class IngestionPipeline:
    """Indexes one library per ``add`` call.

    Args:
        source:               GitHub client (repository metadata and files).
        extractor:            Snippet extraction collaborator.
        embeddings:           Embedding service for the active provider.
        snippets:             Snippet metadata store.
        libraries:            Library registry.
        file_batch_size:      Concurrent file fetches per batch.
        embedding_batch_size: Concurrent embedding calls per batch.
        extensions:           Documentation file extensions to index.
    """

    def __init__(
        self,
        source: GitHubClient,
        extractor: SnippetExtractor,
        embeddings: EmbeddingService,
        snippets: SnippetStore,
        libraries: LibraryRegistry,
        file_batch_size: int = FILE_BATCH_SIZE,
        embedding_batch_size: int = EMBEDDING_BATCH_SIZE,
        extensions: Sequence[str] = DOC_EXTENSIONS,
    ) -> None:
        self._source = source
        self._extractor = extractor
        self._embeddings = embeddings
        self._snippets = snippets
        self._libraries = libraries
        self._file_batch_size = file_batch_size
        self._embedding_batch_size = embedding_batch_size
        self._extensions = tuple(extensions)

    async def add(self, options: AddOptions) -> IngestionSummary:
        """Index (or re-index) a library.

        Raises:
            InvalidLibraryNameError: If ``options.name`` is not ``owner/repo``.
            ValueError: If both a branch and a tag are given.
            MissingApiKeyError: If the embedding/extraction key is absent.
            Exception: On GitHub metadata errors or a failed metadata commit.
        """
        owner, repo = parse_library_name(options.name)
        name = f"{owner}/{repo}"
        provider = self._embeddings.provider.value
        model = self._embeddings.model_id
        logger.info("[Ingestion] Indexing %s with %s provider (%s)", name, provider, model)

        info = await self._source.get_repository(owner, repo)
        ref = build_ref(info.default_branch, branch=options.branch, tag=options.tag)
        sha = await self._source.resolve_ref(owner, repo, ref)
        self._advance(name, IngestionStage.RESOLVED, "ref=%s sha=%s", ref, sha)

        files = await self._source.list_documentation_files(
            owner, repo, sha, folders=options.folders, extensions=self._extensions
        )
        self._advance(name, IngestionStage.FILES_LISTED, "%d documentation files", len(files))

        extracted = await self._extract_all(name, info.description, owner, repo, sha, files)
        self._advance(name, IngestionStage.EXTRACTED, "%d snippets", len(extracted))

        records = await self._embed_all(name, extracted)
        self._advance(name, IngestionStage.EMBEDDED, "%d snippets with embeddings", len(records))

        self._snippets.delete_library_snippets(name)
        self._libraries.replace(Library(
            name=name,
            owner=owner,
            repo=repo,
            ref=ref,
            sha=sha,
            description=info.description,
            folders=list(options.folders),
            files=len(files),
            snippets=len(records),
        ))
        if records:
            self._snippets.insert_snippets(records)
        stats = self._snippets.get_library_stats(name)
        self._advance(
            name, IngestionStage.COMMITTED,
            "snippets=%d vectors=%d", stats.total_snippets, stats.vector_count,
        )

        return IngestionSummary(
            library=name,
            snippets=len(records),
            provider=provider,
            model=model,
            original_dimensions=len(records[0].embedding) if records else 0,
            normalized_dimensions=CANONICAL_DIM,
            files=len(files),
            stats=stats,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _extract_all(
        self,
        name: str,
        description: Optional[str],
        owner: str,
        repo: str,
        ref: str,
        files: list[RepositoryFile],
    ) -> list[_FileSnippet]:
        extracted: list[_FileSnippet] = []
        for start in range(0, len(files), self._file_batch_size):
            batch = files[start:start + self._file_batch_size]
            logger.info(
                "[Ingestion] Processing files %d-%d of %d",
                start + 1, start + len(batch), len(files),
            )
            results = await _gather_batch(
                self._extract_file(name, description, owner, repo, ref, f.path)
                for f in batch
            )
            for snippets in results:
                extracted.extend(snippets)
        return extracted

    async def _extract_file(
        self,
        name: str,
        description: Optional[str],
        owner: str,
        repo: str,
        ref: str,
        path: str,
    ) -> list[_FileSnippet]:
        try:
            content = await self._source.get_file_content(owner, repo, ref, path)
            snippets = await self._extractor.extract(name, description, path, content)
        except MissingApiKeyError:
            raise
        except Exception as exc:
            logger.warning("[Ingestion] Failed to process %s: %s", path, exc)
            return []
        return [_FileSnippet(path=path, snippet=s) for s in snippets]

    async def _embed_all(self, name: str, extracted: list[_FileSnippet]) -> list[SnippetCreate]:
        records: list[SnippetCreate] = []
        for start in range(0, len(extracted), self._embedding_batch_size):
            batch = extracted[start:start + self._embedding_batch_size]
            logger.info(
                "[Ingestion] Generating embeddings %d-%d of %d",
                start + 1, start + len(batch), len(extracted),
            )
            results = await _gather_batch(self._embed_snippet(name, item) for item in batch)
            records.extend(r for r in results if r is not None)
        return records

    async def _embed_snippet(self, name: str, item: _FileSnippet) -> Optional[SnippetCreate]:
        snippet = item.snippet
        try:
            result = await self._embeddings.embed(f"## {snippet.title}\n\n{snippet.description}")
            self._embeddings.normalizer.normalize(result.vector, result.provider)
        except MissingApiKeyError:
            raise
        except UnsupportedEmbeddingDimensionError as exc:
            logger.warning("[Ingestion] Dropping snippet %r: %s", snippet.title, exc)
            return None
        except Exception as exc:
            logger.warning(
                "[Ingestion] Failed to generate embedding for %r: %s", snippet.title, exc
            )
            return None
        return SnippetCreate(
            library=name,
            path=item.path,
            title=snippet.title,
            description=snippet.description,
            language=snippet.language,
            code=snippet.code,
            embedding=result.vector,
            provider=result.provider,
        )

    @staticmethod
    def _advance(name: str, stage: IngestionStage, detail: str, *args) -> None:
        logger.info("[Ingestion] %s → %s: " + detail, name, stage.value, *args)
