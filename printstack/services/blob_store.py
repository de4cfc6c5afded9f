import logging
from typing import Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from printstack.core.errors import PersistenceError
from printstack.models.blob import BlobEntry

logger = logging.getLogger(__name__)


class BlobStore:
    """Key -> string store; the stand-in for browser local storage."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_many(self, items: Mapping[str, str]) -> None:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})


class MemoryBlobStore(BlobStore):
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        # Tests flip this to simulate a full or disabled store
        self.fail_writes = False

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_many(self, items: Mapping[str, str]) -> None:
        if self.fail_writes:
            raise PersistenceError("Storage is not writable")
        self.data.update(items)


class SqlBlobStore(BlobStore):
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        entry = self.db.query(BlobEntry).filter(BlobEntry.key == key).first()
        return entry.value if entry else None

    def set_many(self, items: Mapping[str, str]) -> None:
        """Write all keys in one transaction; nothing is written on failure."""
        try:
            for key, value in items.items():
                entry = self.db.query(BlobEntry).filter(BlobEntry.key == key).first()
                if entry:
                    entry.value = value
                else:
                    self.db.add(BlobEntry(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error writing blobs {sorted(items)}: {str(e)}")
            self.db.rollback()
            raise PersistenceError(f"Failed to save data: {str(e)}") from e
