"""
JSON file-based storage implementation.

Keeps the whole election (voters, candidates, id counter) in one JSON file.
Each transaction loads the file, works on the loaded copy and, on commit,
writes a temporary file that atomically replaces the original. Intended for
the single-host CLI; concurrent transactions are serialized within one
process only.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Union

from ..exceptions import StoreCorrupted, StoreUnavailable
from ..models import Candidate, Voter
from .memory_store import MemoryState, MemoryStore


class JSONFileStore(MemoryStore):
    """
    JSON file-backed store.

    File layout:
        {
          "next_candidate_id": 3,
          "candidates": [{"id": 1, "name": "Alice", ...}, ...],
          "voters": [{"address": "0xA", "authorized": true, ...}, ...]
        }
    """

    backend = "json"

    def __init__(self, path: Union[str, Path]):
        """
        Initialize JSON store.

        Args:
            path: Location of the election file (created on first commit)
        """
        super().__init__()
        self.path = Path(path)

    def init_schema(self) -> None:
        """Create an empty election file if none exists."""
        with self._lock:
            if not self.path.exists():
                self._save(MemoryState())

    def _load(self) -> MemoryState:
        if not self.path.exists():
            return MemoryState()
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreUnavailable(
                f"Failed to read election file {self.path}: {e}",
                backend=self.backend,
                operation="load",
            ) from e

        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            candidates = [Candidate.from_dict(c) for c in data.get("candidates", [])]
            voters = [Voter.from_dict(v) for v in data.get("voters", [])]
            next_id = data.get("next_candidate_id", max((c.id for c in candidates), default=0) + 1)
            if not isinstance(next_id, int):
                raise TypeError("next_candidate_id must be an integer")
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            # json.JSONDecodeError is a ValueError
            raise StoreCorrupted(
                f"Election file {self.path} is corrupt: {e}",
                backend=self.backend,
                location=str(self.path),
            ) from e

        return MemoryState(
            voters={v.address: v for v in voters},
            candidates={c.id: c for c in candidates},
            next_candidate_id=next_id,
        )

    def _save(self, state: MemoryState) -> None:
        data = {
            "next_candidate_id": state.next_candidate_id,
            "candidates": [state.candidates[i].to_dict() for i in sorted(state.candidates)],
            "voters": [state.voters[a].to_dict() for a in sorted(state.voters)],
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreUnavailable(
                f"Failed to write election file {self.path}: {e}",
                backend=self.backend,
                operation="save",
            ) from e
