"""
File-to-record index.

Maps a normalized file path to the ids of the records saved against it,
in append order, plus a running count of records ever added.

The index is a cache of what the entries directory holds. The store treats
it as authoritative; `build_index` exists for explicit recovery and
`merge_indexes` for resolving git merge conflicts in index.json.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .errors import DeserializationError
from .types import Record


@dataclass
class LoreIndex:
    """Index of record ids by file path."""
    files: dict[str, list[str]] = field(default_factory=dict)
    entry_count: int = 0

    def add_entry(self, file_path: str, entry_id: str) -> None:
        self.files.setdefault(file_path, []).append(entry_id)
        self.entry_count += 1

    def get_entries_for_file(self, file_path: str) -> Optional[list[str]]:
        return self.files.get(file_path)

    def to_dict(self) -> dict:
        return {"files": self.files, "entry_count": self.entry_count}

    @classmethod
    def from_dict(cls, d: Any) -> "LoreIndex":
        """Deserialize index.json content.

        Raises:
            DeserializationError: If the shape is not a valid index
        """
        if not isinstance(d, dict):
            raise DeserializationError("index must be a JSON object")
        files = d.get("files", {})
        if not isinstance(files, dict):
            raise DeserializationError("index 'files' must be an object")
        for path, ids in files.items():
            if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
                raise DeserializationError(f"index entry for '{path}' must be a list of ids")
        entry_count = d.get("entry_count", 0)
        if not isinstance(entry_count, int) or isinstance(entry_count, bool) or entry_count < 0:
            raise DeserializationError(f"invalid entry_count: {entry_count!r}")
        return cls(files={k: list(v) for k, v in files.items()}, entry_count=entry_count)


def build_index(records: Iterable[Record]) -> LoreIndex:
    """Build an index from a set of records.

    Records are added oldest first so append order matches recording order.
    """
    index = LoreIndex()
    for record in sorted(records, key=lambda r: r.timestamp):
        index.add_entry(record.target_file, record.id)
    return index


def merge_indexes(ours: LoreIndex, theirs: LoreIndex) -> LoreIndex:
    """Merge two indexes with an append-only strategy.

    Every id from either side is kept. Ids are de-duplicated and sorted per
    file for stable output; entry_count is recomputed from the result.
    """
    merged: dict[str, list[str]] = {}
    for file_path in sorted(set(ours.files) | set(theirs.files)):
        ids = set(ours.files.get(file_path, [])) | set(theirs.files.get(file_path, []))
        merged[file_path] = sorted(ids)
    return LoreIndex(
        files=merged,
        entry_count=sum(len(ids) for ids in merged.values()),
    )
