"""
Tests for the command-line entry point.
"""

import json

import pytest

from intentflow import cli


class TestClassifyCommand:
    def test_prints_intent_json(self, monkeypatch, capsys):
        monkeypatch.setattr(
            "sys.argv", ["intentflow", "classify", "Bridge 500 USDC from Ethereum to Polygon"]
        )
        cli.main()
        body = json.loads(capsys.readouterr().out)
        assert body["category"] == "bridge"
        assert body["confidence"] == 0.88
        assert body["parameters"]["toChain"] == "Polygon"
        assert body["planned_steps"]

    def test_subcommand_required(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["intentflow"])
        with pytest.raises(SystemExit):
            cli.main()
