"""Result records flowing through the consolidation pipeline.

RawResult is one device reading after input validation. ProcessedResult is the
single surviving participation for a runner, carrying its ranking time,
position and resolved validity. Both are frozen: each pipeline call builds
fresh instances and nothing downstream mutates them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Validity(StrEnum):
    """Device verdict for one reading. UNKNOWN means no verdict was recorded."""

    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


IdentityKey = tuple[str, str, str, str]


@dataclass(frozen=True)
class RawResult:
    external_id: str
    game_id: str
    runner_name: str
    club_name: str = ""
    scoring_group: str = ""
    team_id: int | None = None
    elapsed_time_text: str | None = None
    validity: Validity = Validity.UNKNOWN
    reason_code: str | None = None
    punches: tuple[Any, ...] | None = None
    # False when the provider sent a verdict that is none of true/false/null;
    # validity is then UNKNOWN but the reading ranks below a real UNKNOWN in dedup.
    verdict_recognised: bool = True

    @property
    def has_team(self) -> bool:
        return self.team_id is not None and self.team_id > 0

    @property
    def identity_key(self) -> IdentityKey:
        return (self.game_id, self.runner_name, self.club_name, self.scoring_group)


@dataclass(frozen=True)
class ProcessedResult:
    raw: RawResult
    ranking_time_ms: int | float
    position: int | None
    resolved_validity: bool
    display_result: str
    relay_personal_time_ms: int | float | None = None
    is_team_member: bool = False

    @property
    def runner_name(self) -> str:
        return self.raw.runner_name

    @property
    def club_name(self) -> str:
        return self.raw.club_name

    @property
    def scoring_group(self) -> str:
        return self.raw.scoring_group

    @property
    def team_id(self) -> int | None:
        return self.raw.team_id if self.raw.has_team else None

    @property
    def validity(self) -> Validity:
        return self.raw.validity

    @property
    def reason_code(self) -> str | None:
        return self.raw.reason_code

    @property
    def is_ranked(self) -> bool:
        return self.position is not None


__all__ = ["IdentityKey", "ProcessedResult", "RawResult", "Validity"]
