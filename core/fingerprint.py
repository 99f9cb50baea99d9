from __future__ import annotations

import enum
import hashlib
import json
from collections.abc import Iterable
from dataclasses import dataclass

from models.item import BatchItem
from models.region import RegionState

_DELIMITER = ","


class FingerprintPolicy(enum.Enum):
    """Which parts of a batch feed the fingerprint.

    ``IDS`` only looks at the set of item identifiers, so a change limited to
    metadata (a new icon, say) does not count as a change.  ``IDS_AND_METADATA``
    also folds each item's metadata in.
    """

    IDS = "ids"
    IDS_AND_METADATA = "ids_and_metadata"


def _item_key(item: BatchItem, policy: FingerprintPolicy) -> str:
    if policy is FingerprintPolicy.IDS:
        return item.item_id or ""
    meta = json.dumps(item.metadata, sort_keys=True, default=str)
    return f"{item.item_id}|{meta}"


def compute_fingerprint(
    items: Iterable[BatchItem],
    policy: FingerprintPolicy = FingerprintPolicy.IDS,
) -> str:
    """MD5 hex digest of the sorted, comma-joined item keys.

    Items without an identifier do not contribute.  The result does not
    depend on batch order.
    """
    keys = sorted(_item_key(i, policy) for i in items if i.item_id)
    return hashlib.md5(_DELIMITER.join(keys).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ChangeResult:
    changed: bool
    fingerprint: str


class ChangeDetector:
    """Compares a batch against the last fingerprint seen for its region.

    ``detect`` is read-only; the caller commits a changed fingerprint with
    ``commit`` once it has decided to act on the batch.
    """

    def __init__(self, policy: FingerprintPolicy = FingerprintPolicy.IDS) -> None:
        self.policy = policy

    def detect(self, state: RegionState, items: Iterable[BatchItem]) -> ChangeResult:
        fingerprint = compute_fingerprint(items, self.policy)
        if state.last_fingerprint is None:
            return ChangeResult(changed=True, fingerprint=fingerprint)
        return ChangeResult(
            changed=fingerprint != state.last_fingerprint,
            fingerprint=fingerprint,
        )

    @staticmethod
    def commit(state: RegionState, result: ChangeResult) -> None:
        if result.changed:
            state.last_fingerprint = result.fingerprint
