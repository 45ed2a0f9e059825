"""
Content-addressed webfont store.

Artifacts are written once under the SHA-256 of their bytes. An index file
next to them keeps reference counts and maps build keys (what was asked for)
to content hashes (what came out), so later runs can skip identical work.

Lifecycle: open at run start, flush at run end. Each store object is
independent; nothing is kept in module-level state.
"""

import hashlib
import json
import os
import tempfile
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from fontsplit.config.paths import STORE_INDEX, WOFF2_SUFFIX
from fontsplit.core.errors import StoreError
from fontsplit.utils.logging import logger

INDEX_VERSION = 1


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest used to address stored artifacts."""
    return hashlib.sha256(data).hexdigest()


def build_key(
    source_digest: str, codepoints: Iterable[int], *signatures: str
) -> str:
    """Key identifying one unit of work: source face, codepoints and engines."""
    h = hashlib.sha256(source_digest.encode())
    h.update(b"\0")
    h.update(",".join(f"{cp:x}" for cp in sorted(codepoints)).encode())
    for signature in signatures:
        h.update(b"\0")
        h.update(signature.encode())
    return h.hexdigest()


@dataclass(frozen=True)
class StoreEntry:
    """A stored artifact."""

    hash: str
    file_name: str
    path: Path
    ref_count: int


class ContentStore:
    """Write-once, hash-named artifact store with a JSON index."""

    def __init__(self, directory: Path, base_uri: str = ""):
        self.directory = Path(directory)
        self.base_uri = base_uri
        self._refs: dict[str, int] = {}
        self._builds: dict[str, str] = {}
        self._touched: set[str] = set()
        self._writes = 0
        self._dirty = False
        self._index_lock = threading.Lock()
        # digest -> (lock, threads holding or waiting for it)
        self._hash_locks: dict[str, tuple[threading.Lock, int]] = {}

    @classmethod
    def open(cls, directory: Path, base_uri: str = "") -> "ContentStore":
        """
        Open (creating if needed) a store directory and load its index.

        Raises:
            StoreError: If the directory or index cannot be read
        """
        store = cls(directory, base_uri)
        try:
            store.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store {directory}: {e}") from e
        store._load_index()
        logger.debug(f"Opened store {store.directory} ({len(store._refs)} entries)")
        return store

    def __enter__(self) -> "ContentStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def index_path(self) -> Path:
        return self.directory / STORE_INDEX

    @property
    def writes(self) -> int:
        """Number of artifact files written by this store object."""
        return self._writes

    def _load_index(self) -> None:
        if not self.index_path.exists():
            return
        try:
            raw = json.loads(self.index_path.read_text(encoding="utf-8"))
            self._refs = {str(k): int(v) for k, v in raw.get("entries", {}).items()}
            self._builds = {str(k): str(v) for k, v in raw.get("builds", {}).items()}
        except (OSError, ValueError, AttributeError, TypeError) as e:
            raise StoreError(f"Corrupt store index {self.index_path}: {e}") from e

    @contextmanager
    def _locked(self, digest: str) -> Iterator[None]:
        """Serialize writers of one digest; the lock is dropped with its last user."""
        with self._index_lock:
            lock, users = self._hash_locks.get(digest, (None, 0))
            lock = lock or threading.Lock()
            self._hash_locks[digest] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._index_lock:
                users = self._hash_locks[digest][1] - 1
                if users:
                    self._hash_locks[digest] = (lock, users)
                else:
                    del self._hash_locks[digest]

    def file_name(self, digest: str) -> str:
        return f"{digest}{WOFF2_SUFFIX}"

    def _entry(self, digest: str) -> StoreEntry:
        name = self.file_name(digest)
        return StoreEntry(digest, name, self.directory / name, self._refs.get(digest, 0))

    def _write_once(self, path: Path, data: bytes) -> bool:
        """Create path with data unless it exists. Returns True if written."""
        fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            try:
                # link never replaces an existing file
                os.link(tmp_name, path)
            except FileExistsError:
                return False
            return True
        finally:
            Path(tmp_name).unlink(missing_ok=True)

    def put(self, data: bytes, build_key: str | None = None) -> StoreEntry:
        """
        Store data under its content hash.

        Idempotent: identical bytes yield the same entry and are written at
        most once. An existing file is never overwritten.

        Raises:
            StoreError: If the artifact cannot be written
        """
        digest = content_hash(data)
        path = self.directory / self.file_name(digest)

        with self._locked(digest):
            if not path.exists():
                try:
                    written = self._write_once(path, data)
                except OSError as e:
                    raise StoreError(f"Failed to write {path}: {e}") from e
                if written:
                    self._writes += 1
                    logger.debug(f"Writing {path}...")

            with self._index_lock:
                if digest not in self._touched:
                    self._touched.add(digest)
                    self._refs[digest] = self._refs.get(digest, 0) + 1
                if build_key is not None:
                    self._builds[build_key] = digest
                self._dirty = True
                return self._entry(digest)

    def get(self, digest: str) -> StoreEntry | None:
        """Entry for a content hash, if its file is present."""
        entry = self._entry(digest)
        return entry if entry.path.exists() else None

    def lookup(self, build_key: str) -> StoreEntry | None:
        """
        Entry previously produced for build_key, if still present.

        A hit counts as a reference from the current run.
        """
        with self._index_lock:
            digest = self._builds.get(build_key)
        if digest is None:
            return None
        entry = self.get(digest)
        if entry is None:
            return None
        with self._index_lock:
            if digest not in self._touched:
                self._touched.add(digest)
                self._refs[digest] = self._refs.get(digest, 0) + 1
                self._dirty = True
            return self._entry(digest)

    def read(self, entry: StoreEntry) -> bytes:
        """
        Read a stored artifact back.

        Raises:
            StoreError: If the file is missing or does not match its hash
        """
        try:
            data = entry.path.read_bytes()
        except OSError as e:
            raise StoreError(f"Failed to read {entry.path}: {e}") from e
        if content_hash(data) != entry.hash:
            raise StoreError(f"Stored artifact {entry.path} does not match its hash")
        return data

    def uri_for(self, entry: StoreEntry) -> str:
        """Public URI of an entry: the base URI joined with its file name."""
        if not self.base_uri:
            return entry.file_name
        return f"{self.base_uri.rstrip('/')}/{entry.file_name}"

    def entries(self) -> Iterator[StoreEntry]:
        """All indexed entries, sorted by hash."""
        with self._index_lock:
            digests = sorted(self._refs)
        for digest in digests:
            yield self._entry(digest)

    def flush(self) -> None:
        """
        Persist the index atomically.

        Raises:
            StoreError: If the index cannot be written
        """
        with self._index_lock:
            if not self._dirty:
                return
            payload = {
                "version": INDEX_VERSION,
                "entries": dict(sorted(self._refs.items())),
                "builds": dict(sorted(self._builds.items())),
            }
            self._dirty = False

        fd, tmp_name = tempfile.mkstemp(prefix=".index-", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.index_path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            with self._index_lock:
                self._dirty = True
            raise StoreError(f"Failed to write store index: {e}") from e

        logger.debug(f"Flushed store index ({len(payload['entries'])} entries)")

    def close(self) -> None:
        self.flush()
