# -*- coding: utf-8 -*-
"""
Provenance Tracking for the GHG Engine

SHA-256 audit trail for engine operations. Two mechanisms coexist:

- ``compute_result_hash``: a deterministic hash over a result's inputs,
  factor and outputs. Contains no wall-clock value, so recomputing the
  same request always yields the same ``provenance_hash``.
- ``ProvenanceChain`` / ``ProvenanceTracker``: an in-memory, chain-hashed
  operation log (factor lookups, oracle selections, reconciliations, LCA
  evaluations) for tamper-evident review.

Entity Types:
    emission_factor, oracle_selection, calculation, reconciliation,
    lca_graph, batch

Example:
    >>> from ghg_engine.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> entry = tracker.record("calculation", "reconcile", "act-0")
    >>> tracker.verify_chain()
    True

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_GENESIS = "GL-GHG-ENGINE-GENESIS"


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def compute_result_hash(payload: Any) -> str:
    """Deterministic SHA-256 over a JSON-serialisable payload.

    Decimals and other non-JSON types are serialised with ``str`` so the
    exact decimal text takes part in the hash.
    """
    serialized = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# ProvenanceEntry dataclass
# ---------------------------------------------------------------------------


@dataclass
class ProvenanceEntry:
    """A single tamper-evident provenance record.

    Attributes:
        entity_type: Kind of entity (calculation, emission_factor, ...).
        entity_id: Identifier of the entity instance.
        action: Action performed (lookup, select, reconcile, evaluate, ...).
        hash_value: Chain hash of this entry.
        parent_hash: Chain hash of the preceding entry.
        timestamp: UTC ISO timestamp.
        metadata: Extra fields, always including ``data_hash``.
    """

    entity_type: str
    entity_id: str
    action: str
    hash_value: str
    parent_hash: str
    timestamp: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "hash_value": self.hash_value,
            "parent_hash": self.parent_hash,
            "timestamp": self.timestamp,
        }
        if self.metadata:
            result["metadata"] = self.metadata
        return result


# ---------------------------------------------------------------------------
# ProvenanceChain
# ---------------------------------------------------------------------------


class ProvenanceChain:
    """Ordered chain of ProvenanceEntry objects linked by SHA-256 hashes.

    The first entry chains from ``sha256(genesis)``; every later entry
    chains from its predecessor. Thread-safe via a reentrant lock.
    """

    def __init__(self, genesis_hash: str = DEFAULT_GENESIS) -> None:
        self._genesis_hash: str = hashlib.sha256(
            genesis_hash.encode("utf-8")
        ).hexdigest()
        self._entries: List[ProvenanceEntry] = []
        self._last_hash: str = self._genesis_hash
        self._lock: threading.RLock = threading.RLock()

    def add_entry(
        self,
        entity_type: str,
        action: str,
        entity_id: str,
        data: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ProvenanceEntry:
        """Append an entry hashed over data, parent hash, action and time.

        Raises:
            ValueError: If entity_type, action or entity_id is empty.
        """
        if not entity_type:
            raise ValueError("entity_type must not be empty")
        if not action:
            raise ValueError("action must not be empty")
        if not entity_id:
            raise ValueError("entity_id must not be empty")

        timestamp = _utcnow().isoformat()
        data_hash = self._hash_data(data)

        entry_metadata: Dict[str, Any] = {"data_hash": data_hash}
        if metadata:
            entry_metadata.update(metadata)

        with self._lock:
            parent_hash = self._last_hash
            chain_hash = self._compute_chain_hash(
                parent_hash=parent_hash,
                data_hash=data_hash,
                action=action,
                timestamp=timestamp,
            )
            entry = ProvenanceEntry(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                hash_value=chain_hash,
                parent_hash=parent_hash,
                timestamp=timestamp,
                metadata=entry_metadata,
            )
            self._entries.append(entry)
            self._last_hash = chain_hash

        logger.debug(
            "Chain entry added: %s/%s action=%s hash=%s",
            entity_type, entity_id[:16], action, chain_hash[:16],
        )
        return entry

    def verify_chain(self) -> bool:
        """Check every link from the genesis hash to the last entry."""
        with self._lock:
            chain = list(self._entries)

        for i, entry in enumerate(chain):
            expected_parent = self._genesis_hash if i == 0 else chain[i - 1].hash_value
            if entry.parent_hash != expected_parent:
                logger.warning(
                    "verify_chain: chain break at entry[%d] (%s/%s)",
                    i, entry.entity_type, entry.entity_id,
                )
                return False
            recomputed = self._compute_chain_hash(
                parent_hash=entry.parent_hash,
                data_hash=entry.metadata.get("data_hash", ""),
                action=entry.action,
                timestamp=entry.timestamp,
            )
            if recomputed != entry.hash_value:
                logger.warning("verify_chain: entry[%d] hash mismatch", i)
                return False
        return True

    def export_json(self) -> str:
        with self._lock:
            chain_dicts = [entry.to_dict() for entry in self._entries]
        return json.dumps(chain_dicts, indent=2, default=str)

    def get_entries(
        self,
        entity_type: Optional[str] = None,
        action: Optional[str] = None,
    ) -> List[ProvenanceEntry]:
        with self._lock:
            entries = list(self._entries)
        if entity_type:
            entries = [e for e in entries if e.entity_type == entity_type]
        if action:
            entries = [e for e in entries if e.action == action]
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._last_hash = self._genesis_hash
        logger.info("ProvenanceChain reset to genesis state")

    @property
    def genesis_hash(self) -> str:
        return self._genesis_hash

    @property
    def last_hash(self) -> str:
        with self._lock:
            return self._last_hash

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"ProvenanceChain(entries={len(self)}, "
            f"genesis_prefix={self._genesis_hash[:12]})"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _hash_data(data: Optional[Any]) -> str:
        if data is None:
            return hashlib.sha256(b"null").hexdigest()
        return compute_result_hash(data)

    @staticmethod
    def _compute_chain_hash(
        parent_hash: str,
        data_hash: str,
        action: str,
        timestamp: str,
    ) -> str:
        combined = json.dumps(
            {
                "action": action,
                "data_hash": data_hash,
                "parent_hash": parent_hash,
                "timestamp": timestamp,
            },
            sort_keys=True,
        )
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# ProvenanceTracker facade
# ---------------------------------------------------------------------------


class ProvenanceTracker:
    """Entity-scoped facade over a ProvenanceChain.

    Calculators record into a tracker only when provenance is enabled in
    the configuration; a disabled tracker accepts calls and stores nothing.

    Example:
        >>> tracker = ProvenanceTracker(enabled=False)
        >>> tracker.record("calculation", "reconcile", "x") is None
        True
    """

    def __init__(
        self,
        genesis_hash: str = DEFAULT_GENESIS,
        enabled: bool = True,
    ) -> None:
        self._chain = ProvenanceChain(genesis_hash)
        self._entity_store: Dict[str, List[ProvenanceEntry]] = {}
        self._store_lock = threading.RLock()
        self.enabled = enabled

    def record(
        self,
        entity_type: str,
        action: str,
        entity_id: str,
        data: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ProvenanceEntry]:
        """Record an operation; returns None when tracking is disabled."""
        if not self.enabled:
            return None
        entry = self._chain.add_entry(
            entity_type=entity_type,
            action=action,
            entity_id=entity_id,
            data=data,
            metadata=metadata,
        )
        with self._store_lock:
            self._entity_store.setdefault(f"{entity_type}:{entity_id}", []).append(entry)
        return entry

    def verify_chain(self) -> bool:
        return self._chain.verify_chain()

    def get_entries(
        self,
        entity_type: Optional[str] = None,
        action: Optional[str] = None,
    ) -> List[ProvenanceEntry]:
        return self._chain.get_entries(entity_type=entity_type, action=action)

    def get_entries_for_entity(self, entity_type: str, entity_id: str) -> List[ProvenanceEntry]:
        with self._store_lock:
            return list(self._entity_store.get(f"{entity_type}:{entity_id}", []))

    def export_json(self) -> str:
        return self._chain.export_json()

    def clear(self) -> None:
        self._chain.clear()
        with self._store_lock:
            self._entity_store.clear()

    @property
    def entry_count(self) -> int:
        return len(self._chain)

    @property
    def last_hash(self) -> str:
        return self._chain.last_hash

    def __repr__(self) -> str:
        return f"ProvenanceTracker(entries={self.entry_count}, enabled={self.enabled})"


__all__ = [
    "DEFAULT_GENESIS",
    "compute_result_hash",
    "ProvenanceEntry",
    "ProvenanceChain",
    "ProvenanceTracker",
]
