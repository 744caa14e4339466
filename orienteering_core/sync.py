"""Save-results trigger path: fetch, consolidate, filter and upsert.

The provider client and the document store live outside this package; they
are passed in as ResultFetcher / ResultSink implementations. This module only
sequences them around the pure pipeline and turns per-record sink failures
into counts.

Fatal (raised before any ranking happens):
- ValueError: event context missing or invalid
- FetchError: the raw batch could not be retrieved
- NoResultsError: the provider returned an empty batch

Non-fatal (counted in SaveSummary):
- payloads without identity fields (skipped)
- results not matching the EligibilityRule (not forwarded)
- sink exceptions for individual records (failed)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from .pipeline import consolidate_results
from .results import ProcessedResult
from .timecodec import format_ms_to_time, is_finite_time
from .types import CompletionRecordPayload, RawResultPayload
from .validation import (
    EligibilityRule,
    EventContext,
    InputSanitizer,
    ProcessingConfig,
    load_raw_results,
)

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """The raw result batch for a game could not be retrieved."""


class NoResultsError(LookupError):
    """The provider returned no results for a game."""


class ResultFetcher(Protocol):
    def fetch_results(self, game_id: str) -> Sequence[RawResultPayload] | RawResultPayload:
        """Return the provider's runner list; a single runner may come back as a bare object."""
        ...


class ResultSink(Protocol):
    def upsert(self, record: CompletionRecordPayload) -> bool:
        """Persist one record keyed by (name, eventName, gameType).

        Returns True when a new record was created, False when one was updated.
        """
        ...


@dataclass
class SaveSummary:
    """Aggregate counts reported back to the trigger path."""

    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0
    # Consolidated results not forwarded because of the eligibility rule
    filtered_out: int = 0


def _relay_personal_text(result: ProcessedResult) -> str | None:
    if not result.is_team_member:
        return None
    if is_finite_time(result.relay_personal_time_ms):
        return format_ms_to_time(result.relay_personal_time_ms)
    # Keep whatever the device reported (e.g. "DNF") when it was not a time.
    text = (result.raw.elapsed_time_text or "").strip()
    return text or format_ms_to_time(None)


def to_completion_record(
    result: ProcessedResult, context: EventContext
) -> CompletionRecordPayload:
    """Merge event context onto a processed result in the persisted shape."""
    return {
        "name": result.runner_name,
        "eventName": context.event_name,
        "eventType": context.event_type,
        "gameType": context.game_type,
        "result": result.display_result,
        "groupName": result.scoring_group or "Unknown",
        "validity": result.resolved_validity,
        "position": result.position,
        "eventDate": context.event_date,
        "reason": result.reason_code,
        "punchs": list(result.raw.punches) if result.raw.punches is not None else None,
        "relayPersonalTotalTime": _relay_personal_text(result),
        "teamId": str(result.team_id) if result.team_id is not None else None,
    }


def _resolve_context(context: EventContext | Mapping[str, Any] | None) -> EventContext:
    if context is None:
        raise ValueError("event context is required")
    if isinstance(context, EventContext):
        return context
    return InputSanitizer.validate_and_sanitize_context(context)


def save_match_results(
    game_id: str,
    context: EventContext | Mapping[str, Any] | None,
    fetcher: ResultFetcher,
    sink: ResultSink,
    *,
    eligibility: EligibilityRule | None = None,
    config: ProcessingConfig | None = None,
) -> SaveSummary:
    """
    Rank every result of one external game and upsert the eligible ones.

    Positions are computed over all clubs before filtering, so a runner's
    position reflects the full field.

    Args:
      game_id: external game identifier at the timing provider.
      context: event name/type, target game type and optional event date.
      fetcher: provider client returning raw payloads for game_id.
      sink: document store accepting CompletionRecordPayload upserts.
      eligibility: which results are forwarded; None forwards everything.
      config: processing knobs for the pipeline.
    """
    game_id = (game_id or "").strip()
    if not game_id:
        raise ValueError("game_id is required")
    event = _resolve_context(context)
    eligibility = eligibility or EligibilityRule()

    try:
        payloads = fetcher.fetch_results(game_id)
    except Exception as e:
        logger.error(f"Failed to fetch results for game {game_id}: {e}")
        raise FetchError(f"could not fetch results for game {game_id}") from e
    if isinstance(payloads, Mapping):
        # The provider answers with a bare object when the game has one runner.
        payloads = [payloads]
    if not payloads:
        raise NoResultsError(f"no results for game {game_id}")

    records, invalid_payloads = load_raw_results(payloads, game_id=game_id)
    outcome = consolidate_results(records, config=config)
    eligible = [result for result in outcome.results if eligibility.allows(result)]

    summary = SaveSummary(
        processed=len(eligible),
        skipped=invalid_payloads + outcome.skipped_count,
        filtered_out=len(outcome.results) - len(eligible),
    )
    logger.info(
        f"Saving {len(eligible)} of {len(outcome.results)} result(s) for game {game_id} "
        f"({event.event_name} / {event.game_type})"
    )

    for result in eligible:
        record = to_completion_record(result, event)
        try:
            created = sink.upsert(record)
        except Exception as e:
            logger.error(f"Failed to save completion record for {result.runner_name}: {e}")
            summary.failed += 1
            continue
        if created:
            summary.created += 1
        else:
            summary.updated += 1

    logger.info(
        f"Results conversion completed for game {game_id}: processed={summary.processed} "
        f"created={summary.created} updated={summary.updated} failed={summary.failed} "
        f"skipped={summary.skipped}"
    )
    return summary


__all__ = [
    "FetchError",
    "NoResultsError",
    "ResultFetcher",
    "ResultSink",
    "SaveSummary",
    "save_match_results",
    "to_completion_record",
]
