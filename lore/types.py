"""
Data types for lore records.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .errors import DeserializationError


REQUIRED_FIELDS = (
    "id",
    "target_file",
    "file_hash",
    "agent_id",
    "timestamp",
    "intent",
    "reasoning_trace",
)

# Fractional seconds beyond microsecond precision (e.g. nanosecond RFC3339)
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as RFC3339 UTC with a 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Accepts a 'Z' or '+00:00' suffix, naive values (treated as UTC), and
    fractional seconds longer than microseconds (truncated).
    """
    ts = ts.strip().replace("Z", "+00:00").replace("z", "+00:00")
    ts = _FRACTION_RE.sub(r"\1", ts)
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_path(path: str) -> str:
    """Normalize a file path for use as an index key.

    Converts backslashes to forward slashes and strips leading './'.
    Does not resolve '..', change case, or touch the filesystem.
    """
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def parse_line_range(value: str) -> tuple[int, int]:
    """Parse a line range in the form 'start-end' (e.g. '10-45').

    No ordering check: start may exceed end.
    """
    parts = value.split("-")
    if len(parts) != 2:
        raise ValueError(f"Invalid line range '{value}'. Use start-end, e.g. 10-45")
    try:
        start, end = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid line range '{value}'. Use start-end, e.g. 10-45") from None
    if start < 0 or end < 0:
        raise ValueError(f"Invalid line range '{value}'. Line numbers must be unsigned")
    return start, end


@dataclass(frozen=True)
class RejectedAlternative:
    """An alternative that was considered but rejected, with optional reason."""
    name: str
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"name": self.name}
        if self.reason is not None:
            d["reason"] = self.reason
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "RejectedAlternative":
        if not isinstance(d, dict) or not isinstance(d.get("name"), str):
            raise DeserializationError(f"invalid rejected alternative: {d!r}")
        reason = d.get("reason")
        if reason is not None and not isinstance(reason, str):
            raise DeserializationError(f"invalid rejected alternative reason: {reason!r}")
        return cls(name=d["name"], reason=reason)


def parse_rejected(value: str) -> RejectedAlternative:
    """Parse 'name' or 'name=reason' into a RejectedAlternative."""
    if "=" in value:
        name, reason = value.split("=", 1)
        return RejectedAlternative(name=name.strip(), reason=reason.strip() or None)
    return RejectedAlternative(name=value.strip())


@dataclass(frozen=True)
class Record:
    """
    The reasoning behind a change to one file.

    A saved record is never modified; corrections are new records.

    Attributes:
        id: Random unique identifier, assigned at creation
        target_file: Normalized path the record explains
        line_range: Optional inclusive (start, end) pair, not validated
        file_hash: Digest of the file at record time (fingerprint only)
        commit_hash: Optional revision the record is associated with
        agent_id: Author or agent identifier
        timestamp: Creation time, the sort key for all listings
        intent: Brief description of the intent
        reasoning_trace: Full reasoning, may be multi-line
        rejected_alternatives: Alternatives considered and rejected
        tags: Free-text labels
    """
    id: str
    target_file: str
    file_hash: str
    agent_id: str
    timestamp: datetime
    intent: str
    reasoning_trace: str
    line_range: Optional[tuple[int, int]] = None
    commit_hash: Optional[str] = None
    rejected_alternatives: list[RejectedAlternative] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        target_file: str,
        file_hash: str,
        agent_id: str,
        intent: str,
        reasoning_trace: str,
        *,
        line_range: Optional[tuple[int, int]] = None,
        commit_hash: Optional[str] = None,
        rejected_alternatives: Iterable[RejectedAlternative] = (),
        tags: Iterable[str] = (),
    ) -> "Record":
        """Build a new record with a fresh id and the current UTC time."""
        return cls(
            id=str(uuid.uuid4()),
            target_file=normalize_path(target_file),
            file_hash=file_hash,
            agent_id=agent_id,
            timestamp=utc_now(),
            intent=intent,
            reasoning_trace=reasoning_trace,
            line_range=tuple(line_range) if line_range is not None else None,
            commit_hash=commit_hash,
            rejected_alternatives=list(rejected_alternatives),
            tags=list(tags),
        )

    def to_dict(self) -> dict:
        """Serialize to the on-disk JSON shape.

        Absent optionals and empty lists are omitted, not written as null.
        """
        d: dict[str, Any] = {
            "id": self.id,
            "target_file": self.target_file,
        }
        if self.line_range is not None:
            d["line_range"] = list(self.line_range)
        d["file_hash"] = self.file_hash
        if self.commit_hash is not None:
            d["commit_hash"] = self.commit_hash
        d["agent_id"] = self.agent_id
        d["timestamp"] = format_timestamp(self.timestamp)
        d["intent"] = self.intent
        d["reasoning_trace"] = self.reasoning_trace
        if self.rejected_alternatives:
            d["rejected_alternatives"] = [alt.to_dict() for alt in self.rejected_alternatives]
        if self.tags:
            d["tags"] = list(self.tags)
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "Record":
        """Deserialize from the on-disk JSON shape.

        Raises:
            DeserializationError: If required fields are missing or mistyped
        """
        if not isinstance(d, dict):
            raise DeserializationError("record must be a JSON object")
        for key in REQUIRED_FIELDS:
            if not isinstance(d.get(key), str):
                raise DeserializationError(f"missing or invalid field '{key}'")

        try:
            timestamp = parse_timestamp(d["timestamp"])
        except ValueError as e:
            raise DeserializationError(f"invalid timestamp: {e}") from e

        line_range = d.get("line_range")
        if line_range is not None:
            if (
                not isinstance(line_range, list)
                or len(line_range) != 2
                or not all(isinstance(n, int) and not isinstance(n, bool) and n >= 0 for n in line_range)
            ):
                raise DeserializationError(f"invalid line_range: {line_range!r}")
            line_range = (line_range[0], line_range[1])

        commit_hash = d.get("commit_hash")
        if commit_hash is not None and not isinstance(commit_hash, str):
            raise DeserializationError(f"invalid commit_hash: {commit_hash!r}")

        rejected = d.get("rejected_alternatives", [])
        if not isinstance(rejected, list):
            raise DeserializationError("rejected_alternatives must be a list")

        tags = d.get("tags", [])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise DeserializationError("tags must be a list of strings")

        return cls(
            id=d["id"],
            target_file=d["target_file"],
            file_hash=d["file_hash"],
            agent_id=d["agent_id"],
            timestamp=timestamp,
            intent=d["intent"],
            reasoning_trace=d["reasoning_trace"],
            line_range=line_range,
            commit_hash=commit_hash,
            rejected_alternatives=[RejectedAlternative.from_dict(a) for a in rejected],
            tags=list(tags),
        )
