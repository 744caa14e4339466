from .dedup import deduplicate_results, record_priority, select_survivor, validity_priority
from .pipeline import PipelineOutcome, consolidate_results, group_by_scoring_group, rank_scoring_group
from .ranking import (
    Participation,
    RankingEntry,
    TeamAggregate,
    aggregate_team,
    assign_positions,
    classify_participation,
    has_team_participation,
    individual_entry,
    rank_entries,
    team_entry,
)
from .results import ProcessedResult, RawResult, Validity
from .sync import (
    FetchError,
    NoResultsError,
    ResultFetcher,
    ResultSink,
    SaveSummary,
    save_match_results,
    to_completion_record,
)
from .timecodec import DNF_MARKERS, DNF_TEXT, UNRANKABLE_MS, format_ms_to_time, parse_time_to_ms
from .types import CompletionRecordPayload, RawResultPayload
from .validation import (
    EligibilityRule,
    EventContext,
    IndividualPoolPolicy,
    InputSanitizer,
    ProcessingConfig,
    RawResultRecord,
    load_raw_results,
)

__all__ = [
    "CompletionRecordPayload",
    "DNF_MARKERS",
    "DNF_TEXT",
    "EligibilityRule",
    "EventContext",
    "FetchError",
    "IndividualPoolPolicy",
    "InputSanitizer",
    "NoResultsError",
    "Participation",
    "PipelineOutcome",
    "ProcessedResult",
    "ProcessingConfig",
    "RankingEntry",
    "RawResult",
    "RawResultPayload",
    "RawResultRecord",
    "ResultFetcher",
    "ResultSink",
    "SaveSummary",
    "TeamAggregate",
    "UNRANKABLE_MS",
    "Validity",
    "aggregate_team",
    "assign_positions",
    "classify_participation",
    "consolidate_results",
    "deduplicate_results",
    "format_ms_to_time",
    "group_by_scoring_group",
    "has_team_participation",
    "individual_entry",
    "load_raw_results",
    "parse_time_to_ms",
    "rank_entries",
    "rank_scoring_group",
    "record_priority",
    "save_match_results",
    "select_survivor",
    "team_entry",
    "to_completion_record",
    "validity_priority",
]
