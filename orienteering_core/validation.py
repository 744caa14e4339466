"""
Input validation schemas using Pydantic v2
Validates provider payloads, event context and processing configuration
"""

import logging
import re
from typing import Any, FrozenSet, Iterable, List, Literal, Mapping, Optional, Self, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .results import ProcessedResult, RawResult, Validity
from .timecodec import DNF_MARKERS
from .types import TIME_FIELDS

logger = logging.getLogger(__name__)

IndividualPoolPolicy = Literal["shared", "separate"]


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: Any, max_length: int = 255) -> str:
        """Sanitize string input"""
        if value is None:
            return ""
        if not isinstance(value, str):
            value = str(value)

        # Remove null bytes and other control characters
        value = re.sub(r"[\x00-\x1f\x7f]", "", value)

        # Strip whitespace
        value = value.strip()

        # Limit length
        return value[:max_length]

    @staticmethod
    def sanitize_runner_name(name: Any) -> str:
        """Sanitize runner name; keeps CJK and other non-ASCII letters intact"""
        return InputSanitizer.sanitize_string(name, 255)

    @staticmethod
    def sanitize_group(group: Any) -> str:
        """Sanitize scoring group name"""
        return InputSanitizer.sanitize_string(group, 100)

    @staticmethod
    def validate_and_sanitize_context(context: Mapping[str, Any]) -> "EventContext":
        """
        Validate and sanitize event context dictionary

        Returns:
            EventContext: Validated context object

        Raises:
            ValueError: If validation fails
        """
        try:
            return EventContext(**context)
        except ValidationError as e:
            logger.warning(f"Event context validation failed: {e}")
            raise ValueError(f"Invalid event context: {str(e)}")


# ==================== PROVIDER PAYLOADS ====================


def is_recognised_verdict(value: Any) -> bool:
    if value is None or value is True or value is False or isinstance(value, Validity):
        return True
    return isinstance(value, str) and value.strip().lower() in {v.value for v in Validity}


def coerce_validity(value: Any) -> Validity:
    """Map the provider's true/false/null verdict onto the tri-state tag."""
    if isinstance(value, Validity):
        return value
    if value is True:
        return Validity.VALID
    if value is False:
        return Validity.INVALID
    if value is None:
        return Validity.UNKNOWN
    if is_recognised_verdict(value):
        return Validity(value.strip().lower())
    # Anything else is not an explicit verdict
    logger.warning(f"Unrecognised validity value {value!r}; treating as unknown")
    return Validity.UNKNOWN


def coerce_team_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = int(stripped, 10)
        except ValueError:
            return None
        return parsed if parsed > 0 else None
    return None


class RawResultRecord(BaseModel):
    """One provider reading, validated before it enters the pipeline"""

    external_id: str = Field("", alias="id", max_length=64)
    game_id: str = Field("", alias="gameId", max_length=64)
    name: str = Field(..., min_length=1, max_length=255, description="Runner name")
    club_name: str = Field("", alias="clubName", max_length=255)
    group_name: str = Field("", alias="groupName", max_length=100)
    team_id: Optional[int] = Field(None, alias="teamId")
    elapsed_time_text: Optional[str] = Field(None, alias="elapsedTimeText")
    validity: Validity = Validity.UNKNOWN
    verdict_recognised: bool = True
    reason: Optional[str] = Field(None, max_length=255)
    punchs: Optional[List[Any]] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def pick_time_field(cls, data: Any) -> Any:
        """Collapse the provider's alternative time keys into elapsedTimeText"""
        if not isinstance(data, dict):
            return data
        if data.get("elapsedTimeText") not in (None, ""):
            return data
        for key in TIME_FIELDS:
            candidate = data.get(key)
            if candidate not in (None, ""):
                return {**data, "elapsedTimeText": str(candidate)}
        return data

    @model_validator(mode="before")
    @classmethod
    def flag_unrecognised_verdict(cls, data: Any) -> Any:
        """Remember a verdict outside true/false/null before it collapses to UNKNOWN"""
        if not isinstance(data, dict):
            return data
        return {**data, "verdict_recognised": is_recognised_verdict(data.get("validity"))}

    @field_validator("external_id", "game_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> str:
        if v is None or isinstance(v, bool):
            return ""
        return InputSanitizer.sanitize_string(v, 64)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        """Runner name is part of the identity key and must not be blank"""
        if not isinstance(v, str):
            raise ValueError("name must be a string")
        name = InputSanitizer.sanitize_runner_name(v)
        if len(name) == 0:
            raise ValueError("name cannot be empty")
        return name

    @field_validator("club_name", mode="before")
    @classmethod
    def sanitize_club(cls, v: Any) -> str:
        return InputSanitizer.sanitize_string(v, 255)

    @field_validator("group_name", mode="before")
    @classmethod
    def sanitize_group(cls, v: Any) -> str:
        return InputSanitizer.sanitize_group(v)

    @field_validator("elapsed_time_text", mode="before")
    @classmethod
    def coerce_time_text(cls, v: Any) -> Optional[str]:
        # A malformed time must not drop the reading; parsing makes it unrankable
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @field_validator("team_id", mode="before")
    @classmethod
    def validate_team_id(cls, v: Any) -> Optional[int]:
        return coerce_team_id(v)

    @field_validator("validity", mode="before")
    @classmethod
    def validate_validity(cls, v: Any) -> Validity:
        return coerce_validity(v)

    @field_validator("punchs", mode="before")
    @classmethod
    def validate_punchs(cls, v: Any) -> Optional[List[Any]]:
        # Punch data is informational only; a malformed list must not drop the result
        return list(v) if isinstance(v, (list, tuple)) else None

    @field_validator("reason", mode="before")
    @classmethod
    def validate_reason(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        reason = InputSanitizer.sanitize_string(v, 255)
        return reason or None

    def to_raw_result(self, game_id: str = "") -> RawResult:
        return RawResult(
            external_id=self.external_id,
            game_id=self.game_id or game_id,
            runner_name=self.name,
            club_name=self.club_name,
            scoring_group=self.group_name,
            team_id=self.team_id,
            elapsed_time_text=self.elapsed_time_text,
            validity=self.validity,
            verdict_recognised=self.verdict_recognised,
            reason_code=self.reason,
            punches=tuple(self.punchs) if self.punchs is not None else None,
        )


def load_raw_results(
    payloads: Iterable[Mapping[str, Any]], *, game_id: str = ""
) -> Tuple[List[RawResult], int]:
    """
    Validate provider payloads into RawResult records.

    Returns:
        (records, skipped) where skipped counts payloads dropped because they
        could not form an identity key (e.g. no runner name).
    """
    records: List[RawResult] = []
    skipped = 0
    for index, payload in enumerate(payloads):
        if not isinstance(payload, Mapping):
            logger.warning(f"Skipping result #{index}: expected an object, got {type(payload).__name__}")
            skipped += 1
            continue
        try:
            record = RawResultRecord.model_validate(dict(payload))
        except ValidationError as e:
            logger.warning(f"Skipping result #{index} ({payload.get('id')!r}): {e.error_count()} validation error(s)")
            skipped += 1
            continue
        records.append(record.to_raw_result(game_id))
    return records, skipped


# ==================== CONFIGURATION ====================


class ProcessingConfig(BaseModel):
    """Knobs for one consolidation pass"""

    # "shared": individuals in a relay group race against team totals.
    # "separate": they get their own ranking inside the group.
    individual_pool_policy: IndividualPoolPolicy = "shared"
    dnf_markers: FrozenSet[str] = Field(default=DNF_MARKERS)
    default_group_name: str = Field("default", min_length=1, max_length=100)

    model_config = ConfigDict(frozen=True)

    @field_validator("dnf_markers")
    @classmethod
    def validate_dnf_markers(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        markers = frozenset(m.strip().upper() for m in v if isinstance(m, str) and m.strip())
        if not markers:
            raise ValueError("dnf_markers cannot be empty")
        return markers


class EventContext(BaseModel):
    """Caller-supplied event context merged onto every persisted record"""

    event_name: str = Field(..., alias="eventName", min_length=1, max_length=255)
    event_type: Optional[str] = Field(None, alias="eventType", max_length=100)
    game_type: str = Field(..., alias="gameType", min_length=1, max_length=100)
    event_date: Optional[str] = Field(None, alias="eventDate", max_length=64)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("event_name", "game_type", mode="before")
    @classmethod
    def validate_required_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


class EligibilityRule(BaseModel):
    """Which processed results are forwarded to persistence"""

    club_names: FrozenSet[str] = Field(default_factory=frozenset)
    club_name_substrings: Tuple[str, ...] = ()
    # None disables the membership check
    member_names: Optional[FrozenSet[str]] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_substrings(self) -> Self:
        if any(not s.strip() for s in self.club_name_substrings):
            raise ValueError("club_name_substrings cannot contain blank entries")
        return self

    @property
    def restricts_clubs(self) -> bool:
        return bool(self.club_names or self.club_name_substrings)

    def club_allowed(self, club_name: str) -> bool:
        if not self.restricts_clubs:
            return True
        if club_name in self.club_names:
            return True
        return any(s in club_name for s in self.club_name_substrings)

    def allows(self, result: ProcessedResult) -> bool:
        if not self.club_allowed(result.club_name):
            return False
        if self.member_names is not None and result.runner_name not in self.member_names:
            return False
        return True


# ==================== EXPORT ====================

__all__ = [
    "EligibilityRule",
    "EventContext",
    "IndividualPoolPolicy",
    "InputSanitizer",
    "ProcessingConfig",
    "RawResultRecord",
    "coerce_team_id",
    "coerce_validity",
    "is_recognised_verdict",
    "load_raw_results",
]
