"""
Tests for the report CLI.
"""

import json

import pytest

from orchestrator.cli import build_config, create_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "REPORT_DEADLINE_MS",
        "REPORT_ENABLE_DEMO",
        "X_BEARER_TOKEN",
        "REDDIT_CLIENT_CREDENTIALS",
        "ETHERSCAN_API_KEY",
        "BIRDEYE_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env in the working directory out of the tests
    monkeypatch.setattr("orchestrator.cli.load_dotenv", lambda: False)


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = create_parser().parse_args(["PEPE"])

        assert args.token == "PEPE"
        assert args.capabilities is None
        assert args.deadline_ms is None
        assert args.no_cache is False
        assert args.demo is False
        assert args.log_level == "WARNING"

    def test_capabilities(self):
        args = create_parser().parse_args(["PEPE", "-c", "market_snapshot", "whale_activity"])

        assert args.capabilities == ["market_snapshot", "whale_activity"]

    def test_unknown_capability_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["PEPE", "-c", "price_oracle"])


class TestBuildConfig:
    """Tests for CLI configuration precedence."""

    def test_flags_override_env(self, monkeypatch):
        monkeypatch.setenv("REPORT_DEADLINE_MS", "9000")
        args = create_parser().parse_args(["PEPE", "--demo", "--deadline-ms", "1500"])

        config = build_config(args)

        assert config.enable_demo is True
        assert config.deadline_ms == 1500

    def test_yaml_then_env(self, tmp_path, monkeypatch):
        path = tmp_path / "report.yaml"
        path.write_text("deadline_ms: 4000\ncache_capacity: 20\n")
        monkeypatch.setenv("REPORT_DEADLINE_MS", "5000")
        args = create_parser().parse_args(["PEPE", "--config", str(path)])

        config = build_config(args)

        assert config.deadline_ms == 5000
        assert config.cache_capacity == 20


class TestMain:
    """End-to-end runs through main() with no external sources."""

    def test_missing_config_file_exits_1(self, tmp_path, capsys):
        code = main(["PEPE", "--config", str(tmp_path / "missing.yaml")])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    @pytest.mark.parametrize("text", [
        "deadline_ms: fast\n",
        "chains:\n  social_mentions: reddit\n",
    ])
    def test_bad_config_value_exits_1(self, tmp_path, capsys, text):
        path = tmp_path / "bad.yaml"
        path.write_text(text)

        code = main(["PEPE", "--config", str(path)])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_bad_env_value_exits_1(self, monkeypatch, capsys):
        monkeypatch.setenv("REPORT_DEADLINE_MS", "abc")

        code = main(["PEPE", "--demo"])

        assert code == 1
        assert "REPORT_DEADLINE_MS" in capsys.readouterr().err

    def test_demo_only_chain_prints_report(self, tmp_path, capsys):
        path = tmp_path / "demo.yaml"
        path.write_text("chains:\n  market_snapshot:\n    providers: [demo]\n")

        code = main(["PEPE", "--config", str(path), "-c", "market_snapshot", "--compact", "--metrics"])

        output = json.loads(capsys.readouterr().out)
        assert code == 0
        assert output["token_key"] == "PEPE"
        assert output["capabilities"]["market_snapshot"]["provider"] == "demo"
        assert output["warnings"] == []
        assert output["metrics"]["total_events"] == 1
