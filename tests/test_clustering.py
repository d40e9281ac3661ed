import numpy as np
import pytest

from scoutvision.cancellation import CancellationToken, OperationCancelled
from scoutvision.clustering import ClusterConfig, ClusteringEngine, kmeans
from scoutvision.settings import ClusteringSettings

METRICS = ("Goals per 90", "xG per 90")


@pytest.fixture
def clustering():
    return ClusteringEngine(ClusteringSettings())


@pytest.fixture
def two_groups(make_player):
    low = [
        make_player(f"Back {i}", {"Goals per 90": 0.01 * i, "xG per 90": 0.01 * i}, position="CB")
        for i in range(3)
    ]
    high = [
        make_player(f"Nine {i}", {"Goals per 90": 1.0 - 0.01 * i, "xG per 90": 0.9 - 0.01 * i}, position="CF")
        for i in range(3)
    ]
    return low + high


def groups(clusters):
    return sorted(sorted(p.name for p in cluster.players) for cluster in clusters)


def test_separates_obvious_groups(clustering, two_groups):
    clusters = clustering.cluster(two_groups, ClusterConfig(k=2, metrics=METRICS))
    assert groups(clusters) == [
        ["Back 0", "Back 1", "Back 2"],
        ["Nine 0", "Nine 1", "Nine 2"],
    ]
    labels = {cluster.label for cluster in clusters}
    assert labels == {"High Goals/xG", "CB Group"}


def test_same_seed_same_clusters(clustering, make_player):
    rng = np.random.default_rng(7)
    players = [
        make_player(f"P{i}", {"Goals per 90": float(a), "xG per 90": float(b)})
        for i, (a, b) in enumerate(rng.random((30, 2)))
    ]
    config = ClusterConfig(k=4, metrics=METRICS, seed=11)
    first = clustering.cluster(players, config)
    second = clustering.cluster(players, config)
    assert groups(first) == groups(second)
    assert [c.centroid for c in first] == [c.centroid for c in second]


def test_clusters_are_non_empty_and_cover_everyone(clustering, two_groups):
    clusters = clustering.cluster(two_groups, ClusterConfig(k=3, metrics=METRICS))
    assert all(cluster.size > 0 for cluster in clusters)
    assert sum(cluster.size for cluster in clusters) == len(two_groups)
    assert [c.size for c in clusters] == sorted((c.size for c in clusters), reverse=True)


def test_too_few_players_gives_no_clusters(clustering, two_groups):
    assert clustering.cluster(two_groups[:2], ClusterConfig(k=3, metrics=METRICS)) == []
    assert clustering.cluster(two_groups, ClusterConfig(k=2, metrics=())) == []
    assert clustering.cluster(two_groups, ClusterConfig(k=0, metrics=METRICS)) == []


def test_invalid_iterations(clustering, two_groups):
    with pytest.raises(ValueError):
        clustering.cluster(two_groups, ClusterConfig(k=2, max_iterations=0, metrics=METRICS))


def test_unknown_metrics_do_not_fail(clustering, two_groups):
    clusters = clustering.cluster(two_groups, ClusterConfig(k=2, metrics=("Nope",)))
    assert sum(c.size for c in clusters) == len(two_groups)


def test_cancelled_clustering(clustering, two_groups):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        clustering.cluster(two_groups, ClusterConfig(k=2, metrics=METRICS), cancel=token)


def test_kmeans_converges():
    vectors = np.array([[0.0, 0.0], [0.1, 0.0], [1.0, 1.0], [0.9, 1.0]])
    result = kmeans(vectors, 2, 50, np.random.default_rng(0))
    assert result.converged
    assert result.assignments[0] == result.assignments[1]
    assert result.assignments[2] == result.assignments[3]
    assert result.assignments[0] != result.assignments[2]


def test_default_config_follows_settings():
    engine = ClusteringEngine(ClusteringSettings(k=3, seed=None))
    config = engine.default_config(["xG"])
    assert config.k == 3
    assert config.seed is None
    assert config.metrics == ("xG",)
