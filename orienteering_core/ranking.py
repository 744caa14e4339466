"""Relay/individual classification, team aggregation and standings.

Single source of truth for positions within one scoring group:
- A group with any positive teamId is a relay group; members sharing a teamId
  form one team, entries without a team are individuals.
- A team's time is the sum of its members' finite times; the team is valid only
  if every member is VALID and that sum is finite.
- Positions use standard competition ranking (1, 1, 3, ...) over entries that
  are valid with a finite time. Everything else gets no position.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Sequence

from .results import RawResult, Validity
from .timecodec import DNF_MARKERS, UNRANKABLE_MS, is_dnf_marker, is_finite_time, parse_time_to_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participation:
    # Positive teamId -> members, in first-arrival order.
    teams: dict[int, tuple[RawResult, ...]]
    individuals: tuple[RawResult, ...]

    @property
    def has_teams(self) -> bool:
        return bool(self.teams)


@dataclass(frozen=True)
class TeamAggregate:
    team_id: int
    members: tuple[RawResult, ...]
    member_times_ms: tuple[int | float, ...]
    total_ms: int | float
    resolved_validity: bool


@dataclass(frozen=True)
class RankingEntry:
    """One competing unit in a ranking pool: a whole team or one individual."""

    members: tuple[RawResult, ...]
    member_times_ms: tuple[int | float, ...]
    ranking_time_ms: int | float
    resolved_validity: bool
    team_id: int | None = None

    @property
    def is_team(self) -> bool:
        return self.team_id is not None

    @property
    def is_rankable(self) -> bool:
        return self.resolved_validity and is_finite_time(self.ranking_time_ms)


RankedEntry = tuple[RankingEntry, int | None]


def has_team_participation(records: Iterable[RawResult]) -> bool:
    return any(record.has_team for record in records)


def classify_participation(records: Iterable[RawResult]) -> Participation:
    teams: dict[int, list[RawResult]] = {}
    individuals: list[RawResult] = []
    for record in records:
        if record.has_team:
            teams.setdefault(record.team_id, []).append(record)
        else:
            individuals.append(record)
    return Participation(
        teams={team_id: tuple(members) for team_id, members in teams.items()},
        individuals=tuple(individuals),
    )


def _counts_toward_team(record: RawResult, time_ms: int | float, dnf_markers: AbstractSet[str]) -> bool:
    return is_finite_time(time_ms) and not is_dnf_marker(record.elapsed_time_text, dnf_markers)


def aggregate_team(
    team_id: int,
    members: Sequence[RawResult],
    *,
    dnf_markers: AbstractSet[str] = DNF_MARKERS,
) -> TeamAggregate:
    """
    Sum member times into a team total and derive team validity.

    Members without a usable time add nothing to the total; a team where no
    member has one totals UNRANKABLE_MS.
    """
    if not members:
        raise ValueError(f"team {team_id} has no members")
    member_times = tuple(
        parse_time_to_ms(member.elapsed_time_text, dnf_markers=dnf_markers) for member in members
    )
    counted = [
        time_ms
        for member, time_ms in zip(members, member_times)
        if _counts_toward_team(member, time_ms, dnf_markers)
    ]
    total = sum(counted) if counted else UNRANKABLE_MS
    all_valid = all(member.validity is Validity.VALID for member in members)
    resolved = all_valid and is_finite_time(total)
    if not resolved:
        invalid = [f"{m.runner_name}({m.validity})" for m in members if m.validity is not Validity.VALID]
        logger.debug(
            "Team %s unrankable: %s",
            team_id,
            f"invalid members: {', '.join(invalid)}" if invalid else "no usable times",
        )
    return TeamAggregate(
        team_id=team_id,
        members=tuple(members),
        member_times_ms=member_times,
        total_ms=total,
        resolved_validity=resolved,
    )


def team_entry(aggregate: TeamAggregate) -> RankingEntry:
    return RankingEntry(
        members=aggregate.members,
        member_times_ms=aggregate.member_times_ms,
        ranking_time_ms=aggregate.total_ms,
        resolved_validity=aggregate.resolved_validity,
        team_id=aggregate.team_id,
    )


def individual_entry(
    record: RawResult, *, dnf_markers: AbstractSet[str] = DNF_MARKERS
) -> RankingEntry:
    # Only an explicit VALID verdict is eligible; UNKNOWN is not treated as valid.
    time_ms = parse_time_to_ms(record.elapsed_time_text, dnf_markers=dnf_markers)
    return RankingEntry(
        members=(record,),
        member_times_ms=(time_ms,),
        ranking_time_ms=time_ms,
        resolved_validity=record.validity is Validity.VALID,
    )


def assign_positions(times: Sequence[int | float]) -> tuple[int, ...]:
    """
    Standard competition ranking over times already sorted ascending.

    Equal times share a position and consume the following numbers:
    [10, 10, 12] -> (1, 1, 3).
    """
    positions: list[int] = []
    for index, time_ms in enumerate(times):
        if index == 0:
            positions.append(1)
            continue
        previous = times[index - 1]
        if time_ms < previous:
            raise ValueError("assign_positions requires times sorted ascending")
        positions.append(positions[-1] if time_ms == previous else index + 1)
    return tuple(positions)


def rank_entries(entries: Sequence[RankingEntry]) -> list[RankedEntry]:
    """
    Rank one pool of entries.

    Returns (entry, position) pairs: rankable entries first, fastest to
    slowest (stable on input order for equal times), then every unrankable
    entry in input order with position None.
    """
    rankable = [entry for entry in entries if entry.is_rankable]
    unrankable = [entry for entry in entries if not entry.is_rankable]
    ordered = sorted(rankable, key=lambda entry: entry.ranking_time_ms)
    positions = assign_positions([entry.ranking_time_ms for entry in ordered])
    ranked: list[RankedEntry] = list(zip(ordered, positions))
    ranked.extend((entry, None) for entry in unrankable)
    return ranked


__all__ = [
    "Participation",
    "RankedEntry",
    "RankingEntry",
    "TeamAggregate",
    "aggregate_team",
    "assign_positions",
    "classify_participation",
    "has_team_participation",
    "individual_entry",
    "rank_entries",
    "team_entry",
]
