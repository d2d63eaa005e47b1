import csv
import logging
import os
import struct
import tempfile
from enum import IntFlag
from typing import Any, Iterable, List, Optional, Set, Tuple

from avlstore.config import INGEST_PROGRESS_EVERY, RECORD_FORMAT
from avlstore.errors import StorageError
from avlstore.mapping import AVLTreeMap

logger = logging.getLogger(__name__)

# File layout:
#     header: flags as little-endian int32
#     slots:  [valid: bool (1 byte) | record: struct(record_format)] * N
_HEADER = struct.Struct("<i")
_VALID = struct.Struct("<?")


class FileFlags(IntFlag):
    CLEAN = 1
    EMPTY = 2


DEFAULT_FLAGS = FileFlags.CLEAN | FileFlags.EMPTY


class FileStorage:
    """
    Fixed-size binary record file.

    Removing a record only tombstones its slot and marks the file dirty;
    rewrite() compacts the file and marks it clean again.
    """

    def __init__(self, path: str, record_format: str = RECORD_FORMAT):
        self.path = path
        self._record = struct.Struct(record_format)
        self._slot_size = _VALID.size + self._record.size

        if not os.path.exists(path):
            with open(path, "wb") as f:
                f.write(_HEADER.pack(DEFAULT_FLAGS))
            logger.debug("Created record file %s", path)
        else:
            size = os.path.getsize(path)
            if size < _HEADER.size or (size - _HEADER.size) % self._slot_size:
                raise StorageError(f"{path} is not a record file for format {record_format!r}")

    # ------------------ Header ------------------
    def flags(self) -> FileFlags:
        with open(self.path, "rb") as f:
            return self._read_flags(f)

    def clean(self) -> bool:
        return bool(self.flags() & FileFlags.CLEAN)

    def empty(self) -> bool:
        return bool(self.flags() & FileFlags.EMPTY)

    @staticmethod
    def _read_flags(f) -> FileFlags:
        f.seek(0)
        raw = f.read(_HEADER.size)
        if len(raw) < _HEADER.size:
            raise StorageError("record file header is truncated")
        return FileFlags(_HEADER.unpack(raw)[0])

    def _clear_flags(self, f, flags: FileFlags) -> None:
        current = self._read_flags(f)
        if current & flags:
            f.seek(0)
            f.write(_HEADER.pack(current & ~flags))

    def _offset(self, index: int) -> int:
        return _HEADER.size + index * self._slot_size

    def __len__(self) -> int:
        """Number of slots, tombstoned ones included."""
        return (os.path.getsize(self.path) - _HEADER.size) // self._slot_size

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise IndexError(f"slot {index} outside record file of {len(self)} slots")

    # ------------------ Records ------------------
    def write(self, record: Tuple[Any, ...], index: Optional[int] = None) -> int:
        """Append record, or overwrite slot index. Return the slot used."""
        count = len(self)
        if index is None:
            index = count
        elif not 0 <= index <= count:
            raise IndexError(f"slot {index} outside record file of {count} slots")

        try:
            payload = _VALID.pack(True) + self._record.pack(*record)
        except struct.error as e:
            raise ValueError(f"record {record!r} does not match format {self._record.format!r}") from e

        with open(self.path, "r+b") as f:
            f.seek(self._offset(index))
            f.write(payload)
            self._clear_flags(f, FileFlags.EMPTY)
        return index

    def read(self, index: int) -> Optional[Tuple[Any, ...]]:
        """Return the record in slot index, or None if it was removed."""
        self._check_index(index)
        with open(self.path, "rb") as f:
            f.seek(self._offset(index))
            slot = f.read(self._slot_size)
        if not _VALID.unpack_from(slot)[0]:
            return None
        return self._record.unpack_from(slot, _VALID.size)

    def remove(self, index: int) -> bool:
        """Tombstone slot index. Return False if it was already removed."""
        self._check_index(index)
        with open(self.path, "r+b") as f:
            f.seek(self._offset(index))
            if not _VALID.unpack(f.read(_VALID.size))[0]:
                return False
            f.seek(self._offset(index))
            f.write(_VALID.pack(False))
            self._clear_flags(f, FileFlags.CLEAN)
        return True

    def __iter__(self) -> Iterable[Tuple[int, Tuple[Any, ...]]]:
        """Generate (index, record) for every live slot."""
        with open(self.path, "rb") as f:
            f.seek(_HEADER.size)
            index = 0
            while True:
                slot = f.read(self._slot_size)
                if not slot:
                    break
                if len(slot) < self._slot_size:
                    raise StorageError(f"slot {index} is truncated")
                if _VALID.unpack_from(slot)[0]:
                    yield index, self._record.unpack_from(slot, _VALID.size)
                index += 1

    def rewrite(self) -> Set[int]:
        """
        Compact the file by dropping tombstoned slots.

        Live records keep their relative order. Returns the indexes of the
        slots that were dropped.
        """
        removed: Set[int] = set()
        kept = 0
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with open(self.path, "rb") as src, os.fdopen(fd, "wb") as dst:
                dst.write(_HEADER.pack(0))
                src.seek(_HEADER.size)
                index = 0
                while True:
                    slot = src.read(self._slot_size)
                    if not slot:
                        break
                    if len(slot) < self._slot_size:
                        raise StorageError(f"slot {index} is truncated")
                    if _VALID.unpack_from(slot)[0]:
                        dst.write(slot)
                        kept += 1
                    else:
                        removed.add(index)
                    index += 1

                flags = FileFlags.CLEAN
                if kept == 0:
                    flags |= FileFlags.EMPTY
                dst.seek(0)
                dst.write(_HEADER.pack(flags))
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info("Compacted %s: kept %d records, dropped %d slots", self.path, kept, len(removed))
        return removed

    def __str__(self) -> str:
        lines = [f"Flags: {self.flags()!r}"]
        for index in range(len(self)):
            record = self.read(index)
            lines.append(f"invalid {index}" if record is None else f"valid {record}")
        return "\n".join(lines)


class RecordDB:
    """Records kept in a FileStorage, indexed by their first field in an AVL map."""

    # ------------------ Initialization ------------------
    def __init__(self, path: str, record_format: str = RECORD_FORMAT):
        self.storage = FileStorage(path, record_format)
        self.key_index: AVLTreeMap = AVLTreeMap()
        self.active_records: int = 0
        self._rebuild_index()

    def _rebuild_index(self) -> None:
        """Rebuild the key index from the live slots of the file."""
        self.key_index.clear()
        self.active_records = 0
        for record_id, record in self.storage:
            self._add_to_index(record[0], record_id)
            self.active_records += 1

    # ------------------ Accessors ------------------
    def __len__(self) -> int:
        """Return the number of live records in the database."""
        return self.active_records

    def clean(self) -> bool:
        return self.storage.clean()

    def keys(self) -> Iterable[Any]:
        return iter(self.key_index)

    # ------------------ Index helpers ------------------
    def _add_to_index(self, key: Any, record_id: int) -> None:
        """Add record_id to the bucket of key (supports duplicates)."""
        bucket = self.key_index.get(key)
        if bucket is None:
            self.key_index.put(key, [record_id])
        else:
            bucket.append(record_id)

    def _remove_from_index(self, key: Any, record_id: int) -> None:
        """Remove record_id from the bucket of key; drop key if empty."""
        bucket = self.key_index.get(key)
        if bucket is None:
            return
        try:
            bucket.remove(record_id)
        except ValueError:
            return
        if not bucket:
            self.key_index.remove(key)

    # ------------------ Core mutations ------------------
    def insert_record(self, record: Tuple[Any, ...]) -> int:
        """Write a record and index it. Returns the new record ID."""
        record = tuple(record)
        if not record:
            raise ValueError("Record must include a key field")
        record_id = self.storage.write(record)
        self._add_to_index(record[0], record_id)
        self.active_records += 1
        return record_id

    def delete_record(self, record_id: int) -> bool:
        """Delete a record by ID; the slot is tombstoned until compact()."""
        record = self.get_record(record_id)
        if record is None:
            return False
        self.storage.remove(record_id)
        self._remove_from_index(record[0], record_id)
        self.active_records -= 1
        return True

    def update_record(self, record_id: int, record: Tuple[Any, ...]) -> bool:
        """Overwrite a live record in place; reindex if its key changes."""
        old = self.get_record(record_id)
        if old is None:
            return False
        record = tuple(record)
        self.storage.write(record, record_id)
        if record[0] != old[0]:
            self._remove_from_index(old[0], record_id)
            self._add_to_index(record[0], record_id)
        return True

    def compact(self) -> Set[int]:
        """Rewrite the file without tombstones. Record IDs are renumbered."""
        removed = self.storage.rewrite()
        self._rebuild_index()
        return removed

    # ------------------ Core queries ------------------
    def get_record(self, record_id: int) -> Optional[Tuple[Any, ...]]:
        if not 0 <= record_id < len(self.storage):
            return None
        return self.storage.read(record_id)

    def get_records_by_key(self, key: Any) -> List[Tuple[Any, ...]]:
        """Return all live records with this key, oldest first."""
        results: List[Tuple[Any, ...]] = []
        for record_id in self.key_index.get(key, []):
            record = self.storage.read(record_id)
            if record is not None:
                results.append(record)
        return results

    def get_record_by_key(self, key: Any) -> Optional[Tuple[Any, ...]]:
        records = self.get_records_by_key(key)
        return records[0] if records else None

    # ------------------ Data ingestion ------------------
    def ingest_csv(self, file_path: str, key_column: str = "key", value_column: str = "value") -> int:
        """
        Read (key, value) rows from a CSV file into the database.

        Rows whose key is not an integer or whose value is not a number are
        skipped. Returns the number of records ingested.
        """
        if not os.path.exists(file_path):
            logger.error("File not found at %s", file_path)
            return 0

        logger.info("Ingesting data from: %s", file_path)
        total_records = 0
        skipped = 0

        with open(file_path, mode='r', newline='', encoding='utf-8') as csvfile:
            reader = csv.DictReader(csvfile)

            fieldnames = reader.fieldnames or []
            for column in (key_column, value_column):
                if column not in fieldnames:
                    logger.warning("Column '%s' not found; available columns: %s", column, fieldnames)

            for row in reader:
                try:
                    record = (int(row[key_column]), float(row[value_column]))
                except (KeyError, TypeError, ValueError):
                    logger.warning("Skipping line %d of %s: %r", reader.line_num, file_path, row)
                    skipped += 1
                    continue

                self.insert_record(record)
                total_records += 1

                if total_records % INGEST_PROGRESS_EVERY == 0:
                    logger.info("Progress: %s records ingested...", f"{total_records:,}")

        logger.info("Ingested %s records (%d skipped); index holds %d keys",
                    f"{total_records:,}", skipped, len(self.key_index))
        return total_records
