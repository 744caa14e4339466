import math

from orienteering_core import (
    ProcessingConfig,
    RawResult,
    Validity,
    consolidate_results,
    group_by_scoring_group,
    load_raw_results,
    rank_scoring_group,
)


def _raw(name, time, validity=Validity.VALID, *, team=None, group="M21", club="Club", ext=None):
    return RawResult(
        external_id=ext or name,
        game_id="g1",
        runner_name=name,
        club_name=club,
        scoring_group=group,
        team_id=team,
        elapsed_time_text=time,
        validity=validity,
    )


def _positions(results):
    return [(r.runner_name, r.position) for r in results]


def _relay_batch():
    return [
        _raw("T1a", "05:00", team=1, group="Relay"),
        _raw("T2a", "05:00", team=2, group="Relay"),
        _raw("X", "10:00", group="Relay"),
        _raw("T1b", "06:00", team=1, group="Relay"),
        _raw("T2b", "04:00", Validity.INVALID, team=2, group="Relay"),
        _raw("T3a", "04:00", team=3, group="Relay"),
        _raw("T3b", "05:00", team=3, group="Relay"),
    ]


def test_individual_tie_shares_position_and_consumes_next():
    batch = [_raw("A", "20:00"), _raw("B", "19:59"), _raw("C", "20:00")]
    out = consolidate_results(batch)
    assert _positions(out.results) == [("B", 1), ("A", 2), ("C", 2)]
    assert [r.ranking_time_ms for r in out.results] == [1199000, 1200000, 1200000]


def test_individual_group_only_valid_entries_are_ranked():
    batch = [
        _raw("A", "20:00", Validity.UNKNOWN),
        _raw("B", "25:00"),
        _raw("C", "18:00", Validity.INVALID),
        _raw("D", "DNF"),
    ]
    out = consolidate_results(batch).results
    assert _positions(out) == [("B", 1), ("A", None), ("C", None), ("D", None)]
    by_name = {r.runner_name: r for r in out}
    assert by_name["A"].resolved_validity is False
    assert by_name["C"].resolved_validity is False
    assert by_name["D"].display_result == "DNF"
    assert by_name["B"].display_result == "25:00"
    assert by_name["B"].relay_personal_time_ms is None


def test_team_aggregation_ranks_teams_by_total():
    out = consolidate_results(_relay_batch()).results
    by_name = {r.runner_name: r for r in out}
    # T3 = 540000, X = 600000, T1 = 660000
    assert by_name["T3a"].position == by_name["T3b"].position == 1
    assert by_name["X"].position == 2
    assert by_name["T1a"].position == by_name["T1b"].position == 3
    assert by_name["T1a"].ranking_time_ms == 660000
    assert by_name["T1a"].resolved_validity is True
    assert by_name["T1a"].display_result == "11:00.000"
    assert by_name["T1a"].relay_personal_time_ms == 300000
    assert by_name["T1b"].relay_personal_time_ms == 360000
    assert by_name["T1a"].is_team_member is True
    assert by_name["X"].is_team_member is False


def test_team_with_invalid_member_is_unranked_for_every_member():
    out = consolidate_results(_relay_batch()).results
    by_name = {r.runner_name: r for r in out}
    for name in ("T2a", "T2b"):
        assert by_name[name].position is None
        assert by_name[name].resolved_validity is False
    # Individually valid with a finite time, still contaminated by the team.
    assert by_name["T2a"].validity is Validity.VALID


def test_relay_group_output_order_ranked_then_unranked():
    out = consolidate_results(_relay_batch()).results
    assert [r.runner_name for r in out] == ["T3a", "T3b", "X", "T1a", "T1b", "T2a", "T2b"]


def test_separate_policy_ranks_individuals_on_their_own():
    config = ProcessingConfig(individual_pool_policy="separate")
    out = consolidate_results(_relay_batch(), config=config).results
    by_name = {r.runner_name: r for r in out}
    assert by_name["T3a"].position == 1
    assert by_name["T1a"].position == 2
    assert by_name["X"].position == 1
    assert [r.runner_name for r in out] == ["T3a", "T3b", "T1a", "T1b", "T2a", "T2b", "X"]


def test_invalid_individual_in_relay_group_is_unranked():
    batch = [
        _raw("A", "05:00", team=1, group="Relay"),
        _raw("Solo", "01:00", Validity.INVALID, group="Relay"),
    ]
    out = consolidate_results(batch).results
    assert _positions(out) == [("A", 1), ("Solo", None)]


def test_team_without_times_displays_dnf():
    batch = [_raw("A", "DNF", team=8, group="Relay"), _raw("B", None, team=8, group="Relay")]
    out = consolidate_results(batch).results
    assert all(r.display_result == "DNF" for r in out)
    assert all(r.position is None and r.resolved_validity is False for r in out)
    assert all(math.isinf(r.ranking_time_ms) for r in out)


def test_duplicates_collapse_before_ranking():
    batch = [
        _raw("Ana", None, Validity.UNKNOWN, ext="1"),
        _raw("Bob", "04:00", ext="2"),
        _raw("Ana", "03:00", Validity.VALID, ext="3"),
    ]
    out = consolidate_results(batch)
    assert out.duplicate_count == 1
    assert [(r.raw.external_id, r.position) for r in out.results] == [("3", 1), ("2", 2)]


def test_records_without_runner_name_are_skipped():
    batch = [_raw("", "10:00", ext="x1"), _raw("   ", "11:00", ext="x2"), _raw("Ana", "12:00")]
    out = consolidate_results(batch)
    assert out.skipped_count == 2
    assert _positions(out.results) == [("Ana", 1)]


def test_groups_are_ranked_independently_in_first_appearance_order():
    batch = [
        _raw("W1", "30:00", group="W21"),
        _raw("M1", "25:00", group="M21"),
        _raw("W2", "29:00", group="W21"),
        _raw("N1", "40:00", group=""),
    ]
    out = consolidate_results(batch).results
    assert _positions(out) == [("W2", 1), ("W1", 2), ("M1", 1), ("N1", 1)]
    assert list(group_by_scoring_group(batch)) == ["W21", "M21", "default"]


def test_position_is_set_only_for_valid_finite_results():
    batch = _relay_batch() + [
        _raw("A", "20:00", Validity.UNKNOWN),
        _raw("B", "garbage"),
        _raw("C", "21:00"),
        _raw("D", "21:00"),
    ]
    out = consolidate_results(batch)
    assert out.ranked_count == 7
    for result in out.results:
        ranked = result.resolved_validity and math.isfinite(result.ranking_time_ms)
        assert (result.position is not None) == ranked, result.runner_name


def test_rank_scoring_group_accepts_default_config():
    out = rank_scoring_group([_raw("A", "10:00"), _raw("B", "09:00")])
    assert _positions(out) == [("B", 1), ("A", 2)]


def test_custom_dnf_markers_flow_through_pipeline():
    config = ProcessingConfig(dnf_markers={"DNF", "dsq"})
    out = consolidate_results([_raw("A", "DSQ"), _raw("B", "10:00")], config=config).results
    assert _positions(out) == [("B", 1), ("A", None)]


def test_real_no_verdict_reading_beats_earlier_unrecognised_verdict():
    payloads = [
        {"id": "1", "name": "Ana", "clubName": "C", "groupName": "M", "validity": "yes"},
        {"id": "2", "name": "Ana", "clubName": "C", "groupName": "M", "validity": None},
    ]
    records, skipped = load_raw_results(payloads, game_id="g1")
    out = consolidate_results(records)
    assert skipped == 0
    assert [r.raw.external_id for r in out.results] == ["2"]
    assert out.results[0].position is None


def test_unrecognised_verdict_never_ranks_as_valid():
    payloads = [
        {"id": "1", "name": "Ana", "totleTime": "10:00", "validity": "yes"},
        {"id": "2", "name": "Bob", "totleTime": "11:00", "validity": True},
    ]
    records, _ = load_raw_results(payloads, game_id="g1")
    out = consolidate_results(records).results
    assert _positions(out) == [("Bob", 1), ("Ana", None)]
    assert out[1].resolved_validity is False


def test_non_string_and_malformed_times_keep_the_reading():
    payloads = [
        {"id": "1", "name": "Ana", "elapsedTimeText": 1234, "validity": True},
        {"id": "2", "name": "Bob", "totleTime": "1_000", "validity": True},
        {"id": "3", "name": "Cai", "totleTime": "12:00", "validity": True},
    ]
    records, skipped = load_raw_results(payloads, game_id="g1")
    out = consolidate_results(records)
    assert skipped == 0
    # 1234 is read as seconds (20:34), "1_000" is not a time
    assert _positions(out.results) == [("Cai", 1), ("Ana", 2), ("Bob", None)]
    assert math.isinf(out.results[2].ranking_time_ms)
