"""Consolidation pipeline (pure, no HTTP/DB).

consolidate_results() turns one fetched batch of RawResult records into the
ordered ProcessedResult sequence handed to persistence:

1. drop records that cannot form an identity key (no runner name)
2. collapse duplicate device readings (dedup.py)
3. per scoring group, in first-appearance order:
   - relay group: aggregate each team, then rank teams and individuals
     (one shared pool or two separate pools, see ProcessingConfig)
   - individual group: rank each runner by own time; only VALID is eligible
4. flatten every group's standings into one list

Nothing is kept between calls; every grouping dict is built per invocation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Sequence

from .dedup import deduplicate_results
from .ranking import (
    RankedEntry,
    aggregate_team,
    classify_participation,
    individual_entry,
    rank_entries,
    team_entry,
)
from .results import ProcessedResult, RawResult
from .timecodec import DNF_TEXT, format_ms_to_time
from .validation import ProcessingConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutcome:
    """Result of one consolidation pass."""

    results: tuple[ProcessedResult, ...]
    # Records dropped for lacking identity fields
    skipped_count: int = 0
    # Readings removed as duplicates of a surviving record
    duplicate_count: int = 0

    @property
    def ranked_count(self) -> int:
        return sum(1 for result in self.results if result.position is not None)


def group_by_scoring_group(
    records: Iterable[RawResult], default_group: str = "default"
) -> dict[str, list[RawResult]]:
    grouped: dict[str, list[RawResult]] = {}
    for record in records:
        grouped.setdefault(record.scoring_group or default_group, []).append(record)
    return grouped


def _individual_display(record: RawResult) -> str:
    text = (record.elapsed_time_text or "").strip()
    return text or DNF_TEXT


def _to_processed(ranked: Sequence[RankedEntry]) -> list[ProcessedResult]:
    processed: list[ProcessedResult] = []
    for entry, position in ranked:
        if entry.is_team:
            team_display = format_ms_to_time(entry.ranking_time_ms)
            for member, personal_ms in zip(entry.members, entry.member_times_ms):
                processed.append(
                    ProcessedResult(
                        raw=member,
                        ranking_time_ms=entry.ranking_time_ms,
                        position=position,
                        resolved_validity=entry.resolved_validity,
                        display_result=team_display,
                        relay_personal_time_ms=personal_ms,
                        is_team_member=True,
                    )
                )
            continue
        (member,) = entry.members
        processed.append(
            ProcessedResult(
                raw=member,
                ranking_time_ms=entry.ranking_time_ms,
                position=position,
                resolved_validity=entry.resolved_validity,
                display_result=_individual_display(member),
            )
        )
    return processed


def rank_scoring_group(
    records: Sequence[RawResult],
    *,
    config: ProcessingConfig | None = None,
) -> list[ProcessedResult]:
    """
    Compute standings for one scoring group of deduplicated records.

    Args:
      records: deduplicated records, all from the same scoring group.
      config: processing knobs; defaults to ProcessingConfig().
    """
    config = config or ProcessingConfig()
    markers: AbstractSet[str] = config.dnf_markers
    participation = classify_participation(records)

    if not participation.has_teams:
        pool = [individual_entry(record, dnf_markers=markers) for record in records]
        return _to_processed(rank_entries(pool))

    teams = {
        team_id: team_entry(aggregate_team(team_id, members, dnf_markers=markers))
        for team_id, members in participation.teams.items()
    }
    individuals = [
        individual_entry(record, dnf_markers=markers) for record in participation.individuals
    ]
    logger.debug(
        "Relay group: %d team(s), %d individual(s), policy=%s",
        len(teams),
        len(individuals),
        config.individual_pool_policy,
    )
    if config.individual_pool_policy == "separate":
        return _to_processed(rank_entries(list(teams.values()))) + _to_processed(
            rank_entries(individuals)
        )
    # Shared pool in feed order: a team enters at its first member's arrival.
    pool = []
    remaining = iter(individuals)
    for record in records:
        if record.has_team:
            entry = teams.pop(record.team_id, None)
            if entry is not None:
                pool.append(entry)
        else:
            pool.append(next(remaining))
    return _to_processed(rank_entries(pool))


def _has_identity(record: RawResult) -> bool:
    return bool(record.runner_name and record.runner_name.strip())


def consolidate_results(
    records: Iterable[RawResult],
    *,
    config: ProcessingConfig | None = None,
) -> PipelineOutcome:
    """
    Deduplicate, classify and rank one batch of raw results.

    Args:
      records: every raw reading for one external game, in arrival order.
      config: processing knobs; defaults to ProcessingConfig().

    Returns:
      PipelineOutcome with the flattened standings of every scoring group.
    """
    config = config or ProcessingConfig()
    usable: list[RawResult] = []
    skipped = 0
    for record in records:
        if not _has_identity(record):
            logger.warning("Skipping result %s: missing runner name", record.external_id or "<no id>")
            skipped += 1
            continue
        usable.append(record)

    survivors = deduplicate_results(usable)
    grouped = group_by_scoring_group(survivors, config.default_group_name)
    results: list[ProcessedResult] = []
    for group_name, group_records in grouped.items():
        standings = rank_scoring_group(group_records, config=config)
        logger.debug(
            "Group %r: %d result(s), %d ranked",
            group_name,
            len(standings),
            sum(1 for r in standings if r.position is not None),
        )
        results.extend(standings)

    outcome = PipelineOutcome(
        results=tuple(results),
        skipped_count=skipped,
        duplicate_count=len(usable) - len(survivors),
    )
    logger.info(
        "Consolidated %d result(s) in %d group(s): %d ranked, %d skipped, %d duplicate(s)",
        len(outcome.results),
        len(grouped),
        outcome.ranked_count,
        outcome.skipped_count,
        outcome.duplicate_count,
    )
    return outcome


__all__ = ["PipelineOutcome", "consolidate_results", "group_by_scoring_group", "rank_scoring_group"]
