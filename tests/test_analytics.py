import pytest

from scoutvision.analytics import (
    analyze_percentiles,
    category_scores,
    compare_seasons,
    correlated_metrics,
    correlation,
    correlation_matrix,
    detect_outliers,
    distribution,
    high_potential_prospects,
    percentile_profile,
    position_value,
    strengths_and_weaknesses,
)


@pytest.fixture
def cohort(make_player):
    return [
        make_player(f"P{i}", {"Goals": float(i), "Assists": float(2 * i), "Fouls": float(10 - i)})
        for i in range(1, 5)
    ]


def test_analyze_percentiles(cohort):
    analyses = {a.metric: a for a in analyze_percentiles(cohort[2], cohort)}
    goals = analyses["Goals"]
    assert goals.percentile == 63
    assert goals.rank == 2
    assert goals.cohort_size == 4
    assert goals.cohort_mean == 2.5
    assert analyses["Fouls"].percentile == 38
    assert analyze_percentiles(cohort[0], []) == []


def test_percentile_profile_and_strengths(cohort):
    profile = percentile_profile(cohort[3], cohort, ["Goals", "Fouls", "Assists"])
    assert profile.percentiles == {"Goals": 88, "Fouls": 13, "Assists": 88}
    report = strengths_and_weaknesses(profile)
    assert report.strengths == ["Goals", "Assists"]
    assert report.weaknesses == ["Fouls"]
    frame = profile.to_frame()
    assert list(frame["metric"]) == ["Goals", "Assists", "Fouls"]


def test_category_scores_skip_empty_groups(cohort):
    profile = percentile_profile(cohort[3], cohort, ["Goals", "Assists"])
    scores = category_scores(profile, {"Output": ["Goals", "Assists"], "Defending": ["Tackles"]})
    assert scores == {"Output": 88.0}


def test_distribution_last_bin_is_closed(make_player):
    players = [make_player(f"P{v}", {"x": v}) for v in (0.0, 5.0, 10.0)]
    bins = distribution(players, "x", bins=2)
    assert [b.count for b in bins] == [1, 2]
    assert bins[0].label == "0.0-5.0"
    assert sum(b.percentage for b in bins) == pytest.approx(100.0, abs=0.2)
    assert distribution([], "x") == []
    with pytest.raises(ValueError):
        distribution(players, "x", bins=0)


def test_detect_outliers(make_player):
    players = [make_player(f"P{i}", {"x": 1.0}) for i in range(20)]
    players.append(make_player("Spike", {"x": 50.0}))
    outliers = detect_outliers(players, "x")
    assert [o.player.name for o in outliers] == ["Spike"]
    assert detect_outliers(players[:3], "x") == []


def test_correlation(cohort):
    assert correlation(cohort, "Goals", "Assists") == 1.0
    assert correlation(cohort, "Goals", "Fouls") == -1.0
    assert correlation(cohort[:2], "Goals", "Assists") == 0.0
    assert correlation(cohort, "Goals", "Missing") == 0.0
    top = correlated_metrics(cohort, "Goals", top_n=1)
    assert abs(top[0][1]) == 1.0


def test_correlation_matrix(cohort):
    matrix = correlation_matrix(cohort, ["Goals", "Assists", "Missing"])
    assert matrix.loc["Goals", "Assists"] == pytest.approx(1.0)
    assert matrix.loc["Goals", "Missing"] == 0.0


def test_position_value_without_position_metrics(cohort):
    result = position_value(cohort[0], cohort)
    assert result.score == 50
    assert result.breakdown == {}


def test_position_value_with_metrics(make_player):
    players = [make_player(f"P{i}", {"Goals per 90": i / 10, "xG per 90": i / 10}, position="CF") for i in range(5)]
    result = position_value(players[-1], players)
    assert set(result.breakdown) == {"Goals per 90", "xG per 90"}
    assert result.score == 90


def test_position_value_uses_the_position_value_metrics(make_player):
    players = [
        make_player(f"P{i}", {"Goals per 90": i / 10, "Save rate, %": 50.0 + i}, position="CF") for i in range(3)
    ]
    result = position_value(players[0], players)
    assert result.breakdown == {"Goals per 90": 17}
    assert result.score == 17


def test_prospects_respect_age_window(make_player):
    players = [
        make_player("Kid", {"Goals per 90": 0.9}, age=15, position="CF"),
        make_player("Young", {"Goals per 90": 1.2}, age=20, position="CF", market_value=2_000_000),
        make_player("Veteran", {"Goals per 90": 1.0}, age=33, position="CF"),
        make_player("Bench", {"Goals per 90": 0.0}, age=21, position="CF"),
    ]
    prospects = high_potential_prospects(players, min_score=60)
    assert [p.player.name for p in prospects] == ["Young"]
    assert prospects[0].value_ratio == pytest.approx(prospects[0].score / 2)


def test_compare_seasons(make_player):
    current = make_player("Now", {"Goals": 11.0, "Assists": 4.0, "Fouls": 10.2})
    previous = make_player("Then", {"Goals": 10.0, "Assists": 5.0, "Fouls": 10.0})
    trends = {t.metric: t for t in compare_seasons(current, previous, ["Goals", "Assists", "Fouls", "New"])}
    assert trends["Goals"].trend == "up"
    assert trends["Goals"].change == 10.0
    assert trends["Assists"].trend == "down"
    assert trends["Fouls"].trend == "stable"
    assert trends["New"].change is None
    assert compare_seasons(current, None, ["Goals"])[0].previous is None
