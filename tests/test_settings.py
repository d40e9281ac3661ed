import pytest

from scoutvision.settings import (
    EngineSettings,
    SettingsError,
    load_category_weights,
    load_settings,
    load_settings_file,
    settings_from_mapping,
)


def test_packaged_settings_match_defaults():
    settings = load_settings()
    assert settings == EngineSettings()
    assert settings.similarity.spread_factor == 0.6
    assert settings.clustering.seed == 42


def test_partial_mapping_keeps_defaults():
    settings = settings_from_mapping({"similarity": {"spread_factor": 0.8}, "clustering": {"seed": None}})
    assert settings.similarity.spread_factor == 0.8
    assert settings.similarity.max_results == 10
    assert settings.clustering.seed is None


def test_values_are_coerced():
    settings = settings_from_mapping({"query": {"search_limit": "5", "cache_ttl_seconds": 30}})
    assert settings.query.search_limit == 5
    assert settings.query.cache_ttl_seconds == 30.0


@pytest.mark.parametrize(
    "data",
    [
        {"query": {"colour": "blue"}},
        {"metrics": {}},
        {"similarity": {"spread_factor": 0}},
        {"query": {"search_limit": 0}},
        {"clustering": {"max_iterations": "many"}},
        {"query": ["not", "a", "table"]},
        {"clustering": {"k": 5.7}},
        {"query": {"search_limit": True}},
    ],
)
def test_invalid_settings(data):
    with pytest.raises(SettingsError):
        settings_from_mapping(data)


def test_load_settings_file(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("[query]\ncache_ttl_seconds = 5\n\n[clustering]\nk = 3\n", encoding="utf-8")
    settings = load_settings_file(path)
    assert settings.query.cache_ttl_seconds == 5.0
    assert settings.clustering.k == 3


def test_broken_toml(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("[query\n", encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings_file(path)


def test_category_weights():
    weights = load_category_weights()
    assert weights["xG"] == 1.0
    assert all(weight > 0 for weight in weights.values())


def test_whole_floats_are_accepted_for_integers():
    assert settings_from_mapping({"clustering": {"k": 4.0}}).clustering.k == 4


def test_negative_seed_means_unseeded(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("[clustering]\nseed = -1\n", encoding="utf-8")
    assert load_settings_file(path).clustering.seed is None
    assert settings_from_mapping({"clustering": {"seed": 7}}).clustering.seed == 7
