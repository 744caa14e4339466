"""Collapse duplicate device readings into one record per runner.

A runner whose timing chip was swapped mid-race shows up more than once in the
provider feed with the same (game, runner, club, group) identity. Exactly one
reading survives per identity: the one with the most trustworthy verdict.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from .results import IdentityKey, RawResult, Validity

logger = logging.getLogger(__name__)

# Lower number wins.
_VALIDITY_PRIORITY = {
    Validity.VALID: 1,
    Validity.INVALID: 2,
    Validity.UNKNOWN: 3,
}
_OTHER_PRIORITY = 4


def validity_priority(validity: Any) -> int:
    if isinstance(validity, Validity):
        return _VALIDITY_PRIORITY[validity]
    return _OTHER_PRIORITY


def record_priority(record: RawResult) -> int:
    if not record.verdict_recognised:
        return _OTHER_PRIORITY
    return validity_priority(record.validity)


def group_by_identity(records: Iterable[RawResult]) -> dict[IdentityKey, list[RawResult]]:
    grouped: dict[IdentityKey, list[RawResult]] = {}
    for record in records:
        grouped.setdefault(record.identity_key, []).append(record)
    return grouped


def select_survivor(duplicates: Sequence[RawResult]) -> RawResult:
    """Pick the best verdict; earliest arrival wins among equals."""
    if not duplicates:
        raise ValueError("select_survivor requires at least one record")
    # min() returns the first minimal element, which keeps arrival order on ties.
    return min(duplicates, key=record_priority)


def deduplicate_results(records: Iterable[RawResult]) -> list[RawResult]:
    """
    Return one RawResult per identity key.

    Output order follows the first arrival of each key. Groups of one pass
    through unchanged.
    """
    grouped = group_by_identity(records)
    survivors: list[RawResult] = []
    total = 0
    for key, duplicates in grouped.items():
        total += len(duplicates)
        if len(duplicates) == 1:
            survivors.append(duplicates[0])
            continue
        survivor = select_survivor(duplicates)
        logger.debug(
            "Collapsed %d readings for %s: kept %s (%s)",
            len(duplicates),
            key,
            survivor.external_id or "<no id>",
            survivor.validity,
        )
        survivors.append(survivor)
    logger.info("Deduplicated results: %d -> %d", total, len(survivors))
    return survivors


__all__ = [
    "deduplicate_results",
    "group_by_identity",
    "record_priority",
    "select_survivor",
    "validity_priority",
]
