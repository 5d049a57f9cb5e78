"""
Flat-file record store.

Layout under the store root:

    .lore/
      config.json        default agent id, creation time
      index.json         {"files": {path: [id, ...]}, "entry_count": n}
      entries/<id>.json  one pretty-printed record per file
      .gitignore

Saving a record writes its entry file, then reads, updates and rewrites
the index. The two writes are not atomic with respect to each other, and
nothing coordinates concurrent invocations: two racing saves can lose one
index update (last writer wins). Entry files never collide, so
`rebuild_index()` can always recover a correct index from entries/.

Bulk reads (`get_all_records`, `get_records_for_file`) skip unreadable
records. Direct lookup by id (`load_record`) is strict.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from .config import (
    CONFIG_FILENAME,
    DEFAULT_AGENT_ID,
    LORE_DIR,
    StoreConfig,
    load_config,
    save_config,
)
from .errors import (
    AlreadyInitializedError,
    DeserializationError,
    LoreError,
    NotFoundError,
    NotInitializedError,
    StorageIOError,
)
from .index import LoreIndex, build_index
from .types import Record, normalize_path

logger = logging.getLogger(__name__)

ENTRIES_DIR = "entries"
INDEX_FILE = "index.json"
GITIGNORE_CONTENT = "*.tmp\n*.lock\n"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DeserializationError(f"{path}: {e}") from e
    except OSError as e:
        raise StorageIOError(str(e)) from e


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise StorageIOError(str(e)) from e


def _parse_json(content: str, source: Path):
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise DeserializationError(f"{source}: {e}") from e


class LoreStore:
    """
    Record store rooted at a project directory.

    The store is an explicit value: construct one per root, there is no
    module-level instance.
    """

    def __init__(self, root: Union[str, Path]):
        """
        Args:
            root: Directory that contains (or will contain) .lore/
        """
        self.root = Path(root)

    @property
    def lore_dir(self) -> Path:
        return self.root / LORE_DIR

    @property
    def entries_dir(self) -> Path:
        return self.lore_dir / ENTRIES_DIR

    @property
    def index_path(self) -> Path:
        return self.lore_dir / INDEX_FILE

    @property
    def config_path(self) -> Path:
        return self.lore_dir / CONFIG_FILENAME

    def is_initialized(self) -> bool:
        return self.lore_dir.exists()

    def _require_initialized(self) -> None:
        if not self.is_initialized():
            raise NotInitializedError()

    def _entry_path(self, id: str) -> Path:
        return self.entries_dir / f"{id}.json"

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init(self, agent_id: Optional[str] = None) -> StoreConfig:
        """
        Create the store directory tree, an empty index and the config.

        Not idempotent: a second call fails and leaves existing data alone.

        Raises:
            AlreadyInitializedError: If .lore/ already exists
        """
        if self.is_initialized():
            raise AlreadyInitializedError()

        try:
            self.entries_dir.mkdir(parents=True)
        except OSError as e:
            raise StorageIOError(str(e)) from e

        self.save_index(LoreIndex())

        config = StoreConfig(
            path=self.lore_dir,
            default_agent_id=agent_id or DEFAULT_AGENT_ID,
        )
        save_config(config)

        # .lore/ is meant to be committed; only ignore scratch files
        _write_text(self.lore_dir / ".gitignore", GITIGNORE_CONTENT)

        logger.info("Initialized store at %s (agent=%s)", self.lore_dir, config.default_agent_id)
        return config

    # -------------------------------------------------------------------------
    # Index
    # -------------------------------------------------------------------------

    def load_index(self) -> LoreIndex:
        """
        Load the index. A missing index file reads as an empty index.

        Raises:
            NotInitializedError: If the store does not exist
            DeserializationError: If index.json is malformed
        """
        self._require_initialized()
        if not self.index_path.exists():
            return LoreIndex()
        content = _read_text(self.index_path)
        return LoreIndex.from_dict(_parse_json(content, self.index_path))

    def save_index(self, index: LoreIndex) -> None:
        """Write the index via a temp file so readers never see a partial file."""
        tmp_path = self.index_path.with_name(INDEX_FILE + ".tmp")
        _write_text(tmp_path, json.dumps(index.to_dict(), indent=2))
        try:
            os.replace(tmp_path, self.index_path)
        except OSError as e:
            raise StorageIOError(str(e)) from e
        logger.debug("Wrote index: %d files, %d entries", len(index.files), index.entry_count)

    def rebuild_index(self) -> LoreIndex:
        """Rebuild index.json from the records in entries/.

        Recovers index entries lost to interleaved saves or merges.
        """
        records = self.get_all_records()
        index = build_index(records)
        self.save_index(index)
        logger.info("Rebuilt index: %d records across %d files", index.entry_count, len(index.files))
        return index

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def save_record(self, record: Record) -> None:
        """
        Write a record's entry file, then append its id to the index.

        Raises:
            NotInitializedError: If the store does not exist
        """
        self._require_initialized()

        _write_text(self._entry_path(record.id), json.dumps(record.to_dict(), indent=2))

        index = self.load_index()
        index.add_entry(record.target_file, record.id)
        self.save_index(index)

        logger.info("Saved record %s for %s", record.id, record.target_file)

    def load_record(self, id: str) -> Record:
        """
        Load a single record by id.

        Raises:
            NotInitializedError: If the store does not exist
            NotFoundError: If there is no entry file for the id
            DeserializationError: If the entry file is not a valid record
        """
        self._require_initialized()
        path = self._entry_path(id)
        if not path.exists():
            raise NotFoundError(id)
        content = _read_text(path)
        return Record.from_dict(_parse_json(content, path))

    def get_records_for_file(self, file_path: str) -> list[Record]:
        """
        Records saved against a file, newest first.

        Index ids whose entry is missing or unreadable are dropped.
        A file with no index entry yields an empty list.
        """
        index = self.load_index()
        ids = index.get_entries_for_file(normalize_path(file_path)) or []

        records = []
        for id in ids:
            try:
                records.append(self.load_record(id))
            except LoreError as e:
                logger.warning("Skipping index entry %s: %s", id, e)

        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    def get_all_records(self) -> list[Record]:
        """
        Every readable record in entries/, newest first.

        Files that are not valid records are skipped.

        Raises:
            NotInitializedError: If the store does not exist
        """
        self._require_initialized()

        try:
            paths = sorted(self.entries_dir.glob("*.json"))
        except OSError as e:
            raise StorageIOError(str(e)) from e

        records = []
        for path in paths:
            if not path.is_file():
                continue
            try:
                records.append(Record.from_dict(json.loads(_read_text(path))))
            except (json.JSONDecodeError, DeserializationError) as e:
                logger.warning("Skipping unreadable record file %s: %s", path.name, e)

        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    def search(self, query: str) -> list[Record]:
        """
        Case-insensitive substring search, newest first.

        Matches against intent, reasoning trace, rejected alternative names
        and tags. An empty query matches every record.
        """
        needle = query.casefold()

        def matches(record: Record) -> bool:
            return (
                needle in record.intent.casefold()
                or needle in record.reasoning_trace.casefold()
                or any(needle in alt.name.casefold() for alt in record.rejected_alternatives)
                or any(needle in tag.casefold() for tag in record.tags)
            )

        return [r for r in self.get_all_records() if matches(r)]

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    def get_default_agent_id(self) -> str:
        """Default agent id from config, or 'unknown' if store/config is absent."""
        if not self.config_path.exists():
            return DEFAULT_AGENT_ID
        return load_config(self.lore_dir).default_agent_id
