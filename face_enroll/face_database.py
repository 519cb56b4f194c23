#!/usr/bin/env python3
"""
Face Database Management Module
Stores named identities, each with the embeddings captured during enrollment,
as one JSON string per identity in a key-value string-list store

Created: 2025
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Protocol, Sequence, Union

import numpy as np

from .exceptions import FaceStoreError

if TYPE_CHECKING:
    from .config_manager import ConfigManager

FACES_KEY = "registered_faces"

Embedding = List[float]


class KeyValueStore(Protocol):
    """Persistent string-list store, shared_preferences style"""

    def get_string_list(self, key: str) -> Optional[List[str]]:
        ...

    def set_string_list(self, key: str, values: List[str]) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """Process local store, used by tests and throwaway sessions"""

    def __init__(self, initial: Optional[Dict[str, List[str]]] = None):
        self._data: Dict[str, List[str]] = {k: list(v) for k, v in (initial or {}).items()}

    def get_string_list(self, key: str) -> Optional[List[str]]:
        values = self._data.get(key)
        return list(values) if values is not None else None

    def set_string_list(self, key: str, values: List[str]) -> None:
        self._data[key] = list(values)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """Store backed by a single JSON object on disk: {key: [str, ...]}"""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self, strict: bool = False) -> Dict[str, Any]:
        """
        Load the whole store
        Args:
            strict: Raise instead of reading an unreadable file as empty, so a
                write never replaces a file it could not parse
        """
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top level is not a JSON object")
        except (OSError, ValueError) as e:
            if strict:
                raise FaceStoreError(f"Refusing to overwrite unreadable store {self.path}: {e}") from e
            print(f"⚠️  Could not read store {self.path}: {e}", file=sys.stderr)
            return {}
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".store-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get_string_list(self, key: str) -> Optional[List[str]]:
        with self._lock:
            values = self._read().get(key)
        if not isinstance(values, list):
            return None
        return [v for v in values if isinstance(v, str)]

    def set_string_list(self, key: str, values: List[str]) -> None:
        with self._lock:
            data = self._read(strict=True)
            data[key] = list(values)
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read(strict=True)
            if key in data:
                del data[key]
                self._write(data)


@dataclass
class FaceIdentity:
    """A registered person with one embedding per captured frame"""

    name: str
    embeddings: List[Embedding]
    registered_at: datetime

    @property
    def average_embedding(self) -> Embedding:
        """Element-wise mean of all embeddings, recomputed on every access"""
        if not self.embeddings:
            return []
        if len(self.embeddings) == 1:
            return list(self.embeddings[0])
        return np.mean(np.asarray(self.embeddings, dtype=np.float64), axis=0).tolist()

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "embeddings": [list(e) for e in self.embeddings],
            "registeredAt": self.registered_at.isoformat(),
        }


# ----------------------------------------------------------------------
# On-disk record shapes
# ----------------------------------------------------------------------


@dataclass
class ListRecord:
    """Current format: {"name", "embeddings": [[...], ...], "registeredAt"}"""

    name: str
    registered_at: str
    embeddings: Any = field(default=None)


@dataclass
class LegacyRecord:
    """Single-embedding format: {"name", "embedding": [...], "registeredAt"}"""

    name: str
    registered_at: str
    embedding: Any = field(default=None)


StoredRecord = Union[ListRecord, LegacyRecord]


def parse_record(payload: str) -> StoredRecord:
    """
    Decode one stored JSON string into its on-disk shape
    Raises:
        ValueError, TypeError or KeyError when the entry is corrupt
    """
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise TypeError("Stored face entry is not an object")

    name = data["name"]
    registered_at = data["registeredAt"]
    if not isinstance(name, str) or not isinstance(registered_at, str):
        raise TypeError("Stored face entry has invalid name or timestamp")

    if "embeddings" in data:
        return ListRecord(name=name, registered_at=registered_at, embeddings=data["embeddings"])
    return LegacyRecord(name=name, registered_at=registered_at, embedding=data.get("embedding"))


def _parse_vector(raw: Any) -> Embedding:
    if not isinstance(raw, list):
        raise TypeError("Embedding is not a list")
    return [float(x) for x in raw]


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def to_identity(record: StoredRecord) -> FaceIdentity:
    """Adapt either stored shape into a FaceIdentity

    Unreadable embedding payloads degrade to an empty list rather than
    dropping the identity.
    """
    embeddings: List[Embedding]
    try:
        if isinstance(record, ListRecord):
            if not isinstance(record.embeddings, list):
                raise TypeError("Embeddings is not a list")
            embeddings = [_parse_vector(e) for e in record.embeddings]
        elif record.embedding is not None:
            embeddings = [_parse_vector(record.embedding)]
        else:
            embeddings = []
    except (TypeError, ValueError):
        embeddings = []

    return FaceIdentity(
        name=record.name,
        embeddings=embeddings,
        registered_at=_parse_timestamp(record.registered_at),
    )


class FaceStore:
    """Face database keyed by identity name"""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        key: str = FACES_KEY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize face store
        Args:
            store: Backing key-value store, in-memory if omitted
            key: Key under which the identity list is kept
            clock: Source of registration timestamps
        """
        self.store: KeyValueStore = store if store is not None else MemoryKeyValueStore()
        self.key = key
        self._clock = clock
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: "ConfigManager") -> "FaceStore":
        path = config.get("storage.path", "face_store.json")
        return cls(JsonFileKeyValueStore(path), key=config.get("storage.key", FACES_KEY))

    def list_faces(self) -> List[FaceIdentity]:
        """All registered identities in stored order, corrupt entries skipped"""
        payloads = self.store.get_string_list(self.key)
        if payloads is None:
            return []

        faces: List[FaceIdentity] = []
        for payload in payloads:
            try:
                faces.append(to_identity(parse_record(payload)))
            except (KeyError, TypeError, ValueError):
                continue
        return faces

    def get(self, name: str) -> Optional[FaceIdentity]:
        for face in self.list_faces():
            if face.name == name:
                return face
        return None

    def save_face(self, name: str, embeddings: Sequence[Sequence[float]]) -> FaceIdentity:
        """
        Register a person, replacing any identity with the same name
        Args:
            name: Identity name
            embeddings: One embedding per captured frame
        Returns:
            The stored identity
        """
        with self._lock:
            faces = [face for face in self.list_faces() if face.name != name]
            identity = FaceIdentity(
                name=name,
                embeddings=[[float(x) for x in e] for e in embeddings],
                registered_at=self._clock(),
            )
            faces.append(identity)
            self._write(faces)

        print(f"Registered {name} with {len(identity.embeddings)} embeddings")
        return identity

    def add_embedding(self, name: str, embedding: Sequence[float]) -> FaceIdentity:
        """Append one embedding to a person, creating the person if needed"""
        vector = [float(x) for x in embedding]

        with self._lock:
            faces = self.list_faces()
            for index, face in enumerate(faces):
                if face.name == name:
                    identity = FaceIdentity(
                        name=name,
                        embeddings=face.embeddings + [vector],
                        registered_at=face.registered_at,
                    )
                    faces[index] = identity
                    break
            else:
                identity = FaceIdentity(name=name, embeddings=[vector], registered_at=self._clock())
                faces.append(identity)
            self._write(faces)

        return identity

    def delete_face(self, name: str) -> bool:
        """Remove a person, returns False if nobody had that name"""
        with self._lock:
            faces = self.list_faces()
            remaining = [face for face in faces if face.name != name]
            self._write(remaining)

        removed = len(remaining) != len(faces)
        if removed:
            print(f"Removed {name} from database")
        return removed

    def clear_all(self) -> None:
        with self._lock:
            try:
                self.store.remove(self.key)
            except Exception as e:
                raise FaceStoreError(f"Failed to clear faces: {e}") from e
        print("Database cleared")

    def count(self) -> int:
        return len(self.list_faces())

    def _write(self, faces: List[FaceIdentity]) -> None:
        try:
            payloads = [json.dumps(face.to_json()) for face in faces]
            self.store.set_string_list(self.key, payloads)
        except Exception as e:
            raise FaceStoreError(f"Could not write faces: {e}") from e

    def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics"""
        faces = self.list_faces()
        person_stats = {face.name: len(face.embeddings) for face in faces}
        return {
            "total_people": len(faces),
            "total_embeddings": sum(person_stats.values()),
            "person_stats": person_stats,
        }

    def print_statistics(self) -> None:
        stats = self.get_statistics()

        print("=== Face Database Statistics ===")
        print(f"Total People: {stats['total_people']}")
        print(f"Total Embeddings: {stats['total_embeddings']}")
        print("\nPer-person breakdown:")

        for name, count in stats["person_stats"].items():
            print(f"  {name}: {count} embeddings")
