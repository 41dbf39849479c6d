"""
Tests for the command-line interface.
"""

import argparse
import logging

import pytest

from talent_scout.cli import cmd_compare


def compare(first, second):
    return cmd_compare(argparse.Namespace(first=first, second=second))


class TestCompare:
    def test_prints_score(self, capsys):
        assert compare('{"pace": 80}', '{"pace": 50}') == 0
        assert capsys.readouterr().out.strip() == "0.9500"

    @pytest.mark.parametrize(
        "first, second",
        [
            ("[1, 2, 3]", '{"pace": 50}'),
            ('"fast"', '{"pace": 50}'),
            ('{"pace": "quick"}', '{"pace": 50}'),
            ('{"pace": 150}', '{"pace": 50}'),
        ],
    )
    def test_invalid_ratings_rejected(self, first, second, caplog, capsys):
        with caplog.at_level(logging.ERROR, logger="talent_scout.cli"):
            assert compare(first, second) == 1

        assert capsys.readouterr().out == ""
        assert any("Invalid ratings" in r.getMessage() for r in caplog.records)

    def test_malformed_json_rejected(self, caplog):
        with caplog.at_level(logging.ERROR, logger="talent_scout.cli"):
            assert compare("{pace: 80", "{}") == 1

        assert any("JSON objects" in r.getMessage() for r in caplog.records)
