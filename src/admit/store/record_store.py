"""Key/value store with one pretty-printed JSON file per record.

Saves overwrite an existing record with the same key (last writer wins).
Concurrent invocations writing the same key are not coordinated.
"""

import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Callable, Generic, Iterator, List, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from admit._internal.json_format import pretty_dumps
from admit._internal.io.files import write_text_file

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RecordNotFoundError(LookupError):
    """Raised when a record key has no file in the store."""

    kind = "record"

    def __init__(self, key: str):
        super().__init__(f"{self.kind} not found: {key}")
        self.key = key


class StoreError(OSError):
    """I/O failure in a store (other than not-found)."""
    pass


class RecordStore(Generic[RecordT]):
    """Directory-backed store of ``model`` records addressed by a string key."""

    not_found_error: Type[RecordNotFoundError] = RecordNotFoundError

    def __init__(self, directory: Union[str, Path], model: Type[RecordT], filename_for: Callable[[str], str]):
        self.directory = Path(directory)
        self._model = model
        self._filename_for = filename_for

    def path(self, key: str) -> Path:
        return self.directory / self._filename_for(key)

    def exists(self, key: str) -> bool:
        return self.path(key).is_file()

    def save_record(self, key: str, record: RecordT) -> Path:
        """Write ``record`` under ``key``; returns the file path."""
        data = record.model_dump(mode="json", by_alias=True)
        try:
            path = write_text_file(self.path(key), pretty_dumps(data))
        except OSError as exc:
            raise StoreError(f"cannot write {self.path(key)}: {exc.strerror or exc}") from exc
        logger.info("saved %s to %s", key, path)
        return path

    def load_record(self, key: str) -> RecordT:
        path = self.path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise self.not_found_error(key) from None
        except OSError as exc:
            raise StoreError(f"cannot read {path}: {exc.strerror or exc}") from exc
        try:
            return self._model.model_validate_json(data)
        except ValidationError as exc:
            raise StoreError(f"corrupt record {path}: {exc.error_count()} error(s)") from exc

    def delete_record(self, key: str) -> None:
        path = self.path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            raise self.not_found_error(key) from None
        except OSError as exc:
            raise StoreError(f"cannot delete {path}: {exc.strerror or exc}") from exc
        logger.info("deleted %s", path)

    def scan(self) -> Iterator[Tuple[Path, RecordT]]:
        """Yield ``(path, record)`` for every readable record, ordered by file name.

        Non-``.json`` entries, subdirectories, and unreadable or corrupt files
        are skipped. An absent directory yields nothing.
        """
        if not self.directory.is_dir():
            return
        for path in sorted(self.directory.iterdir()):
            if path.suffix != ".json" or not path.is_file():
                continue
            try:
                record = self._model.model_validate_json(path.read_bytes())
            except (OSError, ValidationError) as exc:
                logger.warning("skipping unreadable record %s: %s", path, exc)
                continue
            yield path, record

    def records(self) -> List[RecordT]:
        return [record for _, record in self.scan()]
