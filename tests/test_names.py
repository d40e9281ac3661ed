import pytest

from scoutvision.names import (
    ExactNameResolver,
    FuzzyNameResolver,
    NameResolver,
    SubstringNameResolver,
    make_id,
    make_resolver,
    normalize_name,
)


def test_normalize_name_strips_accents_and_punctuation():
    assert normalize_name("  Kylian  MBAPPÉ ") == "kylian mbappe"
    assert normalize_name("N'Golo Kanté") == "ngolo kante"
    assert normalize_name(None) == ""
    assert normalize_name(float("nan")) == ""


def test_make_id_is_deterministic():
    first = make_id("player", "Lionel Messi", "Inter Miami")
    assert first == "player_lionel_messi_inter_miami"
    assert make_id("player", "Lionel  MESSI", "Inter Miami") == first
    assert make_id("team", "Inter Miami", None, "") == "team_inter_miami"


def test_exact_resolver_needs_full_name():
    resolver = ExactNameResolver()
    resolver.register("Lionel Messi", "p1")
    assert resolver.resolve("lionel messi") == "p1"
    assert resolver.resolve("Messi") is None
    assert "LIONEL MESSI" in resolver
    assert len(resolver) == 1


def test_substring_resolver_matches_in_either_direction():
    resolver = SubstringNameResolver()
    resolver.register("Lionel Messi", "p1")
    resolver.register("Luis Suarez", "p2")
    assert resolver.resolve("Messi") == "p1"
    assert resolver.resolve("Luis Suarez Diaz") == "p2"
    assert resolver.resolve("Busquets") is None


def test_substring_resolver_prefers_registration_order():
    resolver = SubstringNameResolver()
    resolver.register("Jordi Alba", "p1")
    resolver.register("Jordi Alba Ramos", "p2")
    assert resolver.resolve("Alba") == "p1"


def test_qualifier_breaks_ambiguous_names():
    resolver = SubstringNameResolver()
    resolver.register("John Smith", "p1", qualifier="FC Alpha")
    resolver.register("John Smith", "p2", qualifier="FC Beta")
    assert resolver.resolve("John Smith", qualifier="FC Beta") == "p2"
    assert resolver.resolve("John Smith", qualifier="FC Alpha") == "p1"
    assert resolver.resolve("John Smith") == "p1"


def test_fuzzy_resolver_tolerates_typos():
    resolver = FuzzyNameResolver()
    resolver.register("Lionel Messi", "p1")
    assert resolver.resolve("Lionel Mesi") == "p1"
    assert resolver.resolve("Cristiano Ronaldo") is None


def test_empty_names_never_resolve():
    resolver = SubstringNameResolver()
    resolver.register("", "p0")
    resolver.register("Lionel Messi", "p1")
    assert resolver.resolve("") is None
    assert len(resolver) == 1


def test_make_resolver_strategies():
    assert isinstance(make_resolver(), SubstringNameResolver)
    assert isinstance(make_resolver("exact"), ExactNameResolver)
    assert isinstance(make_resolver("fuzzy"), FuzzyNameResolver)
    assert isinstance(make_resolver(lambda: FuzzyNameResolver(95)), NameResolver)


def test_make_resolver_rejects_unknown_strategy():
    with pytest.raises(ValueError):
        make_resolver("phonetic")
    with pytest.raises(ValueError):
        make_resolver(dict)
