import importlib
import logging

import pytest

from scoutvision.cli import main, parse_args

CSV = """Player,Team,Position,League,Minutes played,Goals per 90,xG per 90
Alpha Striker,FC Alpha,ST,Ligue 1 2024-25,1800,0.8,0.7
Beta Forward,FC Beta,ST,Ligue 1 2024-25,1700,0.6,0.5
Delta Mid,FC Beta,CMF,Ligue 1 2024-25,2000,0.1,0.1
"""


@pytest.fixture
def players_csv(tmp_path):
    path = tmp_path / "players.csv"
    path.write_text(CSV, encoding="utf-8")
    return str(path)


def test_parse_args_similar():
    args = parse_args(["--players", "p.csv", "similar", "Alpha", "--distance", "cosine", "--same-position"])
    assert args.command == "similar"
    assert args.distance == "cosine"
    assert args.same_position is True
    assert args.resolver == "substring"


def test_summary(players_csv, capsys):
    assert main(["--players", players_csv, "summary"]) == 0
    out = capsys.readouterr().out
    assert "Players: 3" in out
    assert "Seasons: 24-25" in out


def test_similar(players_csv, capsys):
    assert main(["--players", players_csv, "similar", "Alpha Striker"]) == 0
    out = capsys.readouterr().out
    assert "Similar to Alpha Striker" in out
    assert "Beta Forward" in out


def test_rank_unknown_role(players_csv):
    with pytest.raises(SystemExit):
        main(["--players", players_csv, "rank", "Libero"])


def test_unknown_player(players_csv):
    with pytest.raises(SystemExit):
        main(["--players", players_csv, "roles", "Nobody"])


def test_clusters(players_csv, capsys):
    assert main(["--players", players_csv, "clusters", "--metrics", "Goals per 90", "--k", "2"]) == 0
    assert "players" in capsys.readouterr().out


@pytest.mark.parametrize("name", ["scoutvision.store", "scoutvision.query", "scoutvision.analytics"])
def test_module_loggers_print_once(name):
    importlib.import_module(name)
    logger = logging.getLogger(name)
    assert len(logger.handlers) == 1
    assert logger.propagate is False
