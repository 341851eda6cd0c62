"""
ChainStore - JSON file persistence for prompt chains.

Layout under the storage directory:

    chain-<chainId>.json                      PromptChainDocument
    commits/<commitSha>/chain-<chainId>.json  copy, only when commitSha is set
    commit-index.json                         {"<sha>": ["<chainId>", ...]}

The commit index is rewritten whole on every save. The store assumes a single
writer per storage directory; concurrent saves for the same commit can lose
an index update.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .chain_metrics import compute_chain_metrics
from .models import (
    DOCUMENT_VERSION,
    PromptChain,
    PromptChainDocument,
    PromptChainMetadata,
    RepositoryInfo,
)

logger = logging.getLogger(__name__)

CHAIN_FILE_PREFIX = "chain-"
CHAIN_FILE_SUFFIX = ".json"
COMMITS_DIR = "commits"
COMMIT_INDEX_FILE = "commit-index.json"


def _check_path_component(value: str, what: str) -> str:
    """Reject IDs that would resolve outside their directory."""
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\0" in value:
        raise ValueError(f"Invalid {what}: {value!r}")
    return value


def chain_filename(chain_id: str) -> str:
    """File name for a chain document."""
    return f"{CHAIN_FILE_PREFIX}{chain_id}{CHAIN_FILE_SUFFIX}"


def _atomic_write(target_path: Path, content: str) -> None:
    """
    Write content to target_path via temp file + rename.

    Errors propagate; the temp file is removed on failure.
    """
    fd, temp_path = tempfile.mkstemp(
        suffix=".tmp",
        prefix=f".{target_path.stem}_",
        dir=target_path.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, target_path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class ChainStore:
    """
    Persist PromptChainDocuments keyed by chain ID, with a commit SHA index.

    Reads never raise: missing or unparseable files come back as None or [].
    Writes raise OSError so callers notice lost data.
    """

    def __init__(self, storage_dir: Path | str, repo_path: Path | str):
        """
        Initialize ChainStore.

        Args:
            storage_dir: Directory holding chain documents and the index
            repo_path: Repository the chains belong to (recorded in metadata)
        """
        self.storage_dir = Path(storage_dir)
        self.repo_path = Path(repo_path)

    @property
    def index_path(self) -> Path:
        return self.storage_dir / COMMIT_INDEX_FILE

    def chain_path(self, chain_id: str) -> Path:
        """
        Path of the primary document for chain_id.

        Raises:
            ValueError: If chain_id contains a path separator
        """
        return self.storage_dir / chain_filename(_check_path_component(chain_id, "chain ID"))

    def commit_dir(self, commit_sha: str) -> Path:
        return self.storage_dir / COMMITS_DIR / _check_path_component(commit_sha, "commit SHA")

    def initialize(self) -> None:
        """
        Create the storage directory.

        Raises:
            OSError: If the directory cannot be created
        """
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def build_document(self, chain: PromptChain) -> PromptChainDocument:
        """Wrap a chain in a document with freshly computed metrics."""
        repo = self.repo_path.resolve()
        return PromptChainDocument(
            metadata=PromptChainMetadata(
                version=DOCUMENT_VERSION,
                created=datetime.now(timezone.utc),
                repository=RepositoryInfo(name=repo.name, path=str(repo)),
                metrics=compute_chain_metrics(chain),
            ),
            chain=chain,
        )

    def save(self, chain: PromptChain) -> Path:
        """
        Save a chain.

        Writes chain-<id>.json; when the chain has a commit SHA, also writes a
        copy under commits/<sha>/ and adds the chain ID to the commit index.

        Args:
            chain: Chain to persist (usually one returned by end_chain)

        Returns:
            Path to the primary document

        Raises:
            OSError: If any file cannot be written
            ValueError: If the chain ID or commit SHA contains a path separator
        """
        filepath = self.chain_path(chain.chain_id)
        commit_dir = self.commit_dir(chain.commit_sha) if chain.commit_sha else None

        self.initialize()
        content = self.build_document(chain).to_json()
        _atomic_write(filepath, content)

        if commit_dir is not None:
            commit_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write(commit_dir / chain_filename(chain.chain_id), content)
            self._add_to_index(chain.commit_sha, chain.chain_id)

        logger.info(f"Saved prompt chain to {filepath}")
        return filepath

    def load(self, chain_id: str) -> PromptChainDocument | None:
        """
        Load a document by chain ID.

        Returns:
            PromptChainDocument, or None if missing or unparseable
        """
        try:
            path = self.chain_path(chain_id)
        except ValueError as e:
            logger.warning(str(e))
            return None
        return self._load_file(path)

    def list_all(self) -> list[str]:
        """List IDs of all stored chains, sorted."""
        try:
            names = [p.name for p in self.storage_dir.iterdir() if p.is_file()]
        except OSError as e:
            logger.warning(f"Failed to list chains in {self.storage_dir}: {e}")
            return []

        return sorted(
            name[len(CHAIN_FILE_PREFIX):-len(CHAIN_FILE_SUFFIX)]
            for name in names
            if name.startswith(CHAIN_FILE_PREFIX)
            and name.endswith(CHAIN_FILE_SUFFIX)
            and len(name) > len(CHAIN_FILE_PREFIX) + len(CHAIN_FILE_SUFFIX)
        )

    def list_by_commit(self, commit_sha: str) -> list[str]:
        """Chain IDs associated with commit_sha, in insertion order."""
        return list(self._read_index().get(commit_sha, []))

    def load_by_commit(self, commit_sha: str) -> list[PromptChainDocument]:
        """Load every chain associated with commit_sha, skipping unreadable ones."""
        documents = []
        for chain_id in self.list_by_commit(commit_sha):
            document = self.load(chain_id)
            if document is not None:
                documents.append(document)
        return documents

    def _load_file(self, path: Path) -> PromptChainDocument | None:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

        try:
            return PromptChainDocument.model_validate_json(content)
        except ValidationError as e:
            logger.warning(f"Failed to parse {path}: {e}")
            return None

    def _read_index(self) -> dict[str, list[str]]:
        """Read the commit index; missing or corrupt index reads as empty."""
        try:
            with open(self.index_path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable commit index {self.index_path}: {e}")
            return {}

        if not isinstance(data, dict):
            return {}

        return {
            sha: [str(chain_id) for chain_id in ids]
            for sha, ids in data.items()
            if isinstance(ids, list)
        }

    def _add_to_index(self, commit_sha: str, chain_id: str) -> None:
        index = self._read_index()
        chain_ids = index.setdefault(commit_sha, [])
        if chain_id not in chain_ids:
            chain_ids.append(chain_id)
        _atomic_write(self.index_path, json.dumps(index, indent=2))


__all__ = [
    "ChainStore",
    "chain_filename",
    "CHAIN_FILE_PREFIX",
    "CHAIN_FILE_SUFFIX",
    "COMMITS_DIR",
    "COMMIT_INDEX_FILE",
]
