"""
Oracle State Store

Durable single-document storage for the oracle snapshot.

Rules:
- save() is atomic: the document is written to a temp file in the target
  directory, fsynced, then moved over the target with os.replace().
- load() never raises for bad data. A missing, unparsable, schema-invalid
  or self-inconsistent document yields None and a WARNING.
- Self-check: len(leaves) == 2**depth and the root recomputed from the
  leaves equals the stored root.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from core.crypto.field import FieldHasher, field_hash
from core.errors import CorruptionException, PersistenceException
from core.merkle import compute_root
from oracle.models import OracleSnapshot

logger = logging.getLogger(__name__)


class OracleStateStore:
    """
    Load/save the oracle snapshot at a fixed path.

    Usage:
        store = OracleStateStore("./merkle-tree.json", depth=4)
        snapshot = store.load()
        if snapshot is None:
            ...  # rebuild from base prices
    """

    def __init__(
        self,
        path: str | Path,
        depth: int,
        hasher: FieldHasher = field_hash,
    ) -> None:
        self.path = Path(path)
        self.depth = depth
        self.hasher = hasher

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, snapshot: OracleSnapshot) -> None:
        """
        Atomically persist snapshot.

        Raises:
            PersistenceException: the document could not be written
        """
        document = snapshot.to_json()
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise PersistenceException(
                f"Failed to write snapshot to {self.path}: {e}",
                details={"path": str(self.path)},
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug(f"Snapshot saved to {self.path} (root={snapshot.root})")

    def load(self) -> Optional[OracleSnapshot]:
        """
        Load and self-check the snapshot.

        Returns:
            The snapshot, or None when absent or corrupt
        """
        if not self.path.exists():
            return None

        try:
            text = self.path.read_text(encoding="utf-8")
            snapshot = OracleSnapshot.model_validate_json(text)
            self._check(snapshot)
        except OSError as e:
            logger.warning(f"Could not read snapshot {self.path}: {e}")
            return None
        except ValidationError as e:
            logger.warning(
                f"Snapshot {self.path} is invalid ({e.error_count()} error(s)); ignoring it"
            )
            return None
        except CorruptionException as e:
            logger.warning(f"Snapshot {self.path} is corrupt: {e.message}")
            return None

        return snapshot

    def clear(self) -> None:
        """Delete the persisted snapshot if present."""
        try:
            self.path.unlink()
            logger.info(f"Cleared snapshot {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceException(
                f"Failed to delete snapshot {self.path}: {e}",
                details={"path": str(self.path)},
            ) from e

    def export_json(self) -> Optional[str]:
        """Raw persisted document text, or None if nothing is stored."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _check(self, snapshot: OracleSnapshot) -> None:
        expected = 1 << self.depth
        if len(snapshot.leaves) != expected:
            raise CorruptionException(
                f"expected {expected} leaves, found {len(snapshot.leaves)}",
                details={"expected": expected, "actual": len(snapshot.leaves)},
            )
        rebuilt = compute_root(snapshot.leaves, self.depth, self.hasher)
        if rebuilt != snapshot.root:
            raise CorruptionException(
                "stored root does not match the root rebuilt from leaves",
                details={"stored": str(snapshot.root), "rebuilt": str(rebuilt)},
            )


__all__ = ["OracleStateStore"]
