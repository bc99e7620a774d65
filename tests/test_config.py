"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from architecture_evaluator.config import (
    EvaluatorConfig,
    find_config_file,
    get_config,
    load_config,
    reset_config,
    save_default_config,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run with an empty cwd and home so no real config file is found."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("ARCHITECTURE_EVALUATOR_CONFIG", raising=False)
    monkeypatch.chdir(work)
    return work


class TestDefaults:

    def test_weights_sum_to_one(self):
        weights = EvaluatorConfig().scoring_weights
        total = weights.scalability + weights.reliability + weights.security + weights.cost_efficiency
        assert total == pytest.approx(1.0)

    def test_narrative_disabled_by_default(self):
        config = EvaluatorConfig()
        assert config.narrative.enabled is False
        assert config.narrative.timeout_seconds == 15.0
        assert config.pipeline.parallel is False

    def test_reset(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pipeline:\n  parallel: true\n")
        assert load_config(path).pipeline.parallel is True
        reset_config()
        assert get_config().pipeline.parallel is False


class TestLoading:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "scoring_weights:\n"
            "  scalability: 0.4\n"
            "  reliability: 0.2\n"
            "narrative:\n"
            "  enabled: true\n"
            "  timeout_seconds: 5\n"
        )
        config = load_config(path)

        assert config.scoring_weights.scalability == 0.4
        assert config.scoring_weights.security == 0.25
        assert config.narrative.enabled is True
        assert config.narrative.timeout_seconds == 5.0
        assert get_config() is config

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == EvaluatorConfig()

    def test_save_default_round_trips(self, tmp_path):
        path = tmp_path / "nested" / "evaluator-config.yaml"
        save_default_config(path)

        assert path.read_text().startswith("# Architecture Evaluator Configuration")
        assert load_config(path) == EvaluatorConfig()

    def test_saved_header_names_lookup_locations(self, tmp_path):
        path = tmp_path / "evaluator-config.yaml"
        save_default_config(path)
        header = [line for line in path.read_text().splitlines() if line.startswith("#")]

        assert any("$ARCHITECTURE_EVALUATOR_CONFIG" in line for line in header)
        assert any("./evaluator-config.yaml" in line for line in header)
        assert any("~/.config/architecture-evaluator/config.yaml" in line for line in header)

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pipeline:\n  max_workers: many\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestFindConfigFile:

    def test_nothing_found(self, isolated):
        assert find_config_file() is None

    def test_env_var_wins(self, isolated, tmp_path, monkeypatch):
        env_file = tmp_path / "custom.yaml"
        env_file.write_text("{}")
        (isolated / "evaluator-config.yaml").write_text("{}")
        monkeypatch.setenv("ARCHITECTURE_EVALUATOR_CONFIG", str(env_file))
        assert find_config_file() == env_file

    def test_missing_env_file_falls_through(self, isolated, monkeypatch):
        monkeypatch.setenv("ARCHITECTURE_EVALUATOR_CONFIG", str(isolated / "missing.yaml"))
        (isolated / "evaluator-config.yml").write_text("{}")
        assert find_config_file().name == "evaluator-config.yml"

    def test_current_directory(self, isolated):
        (isolated / "evaluator-config.yaml").write_text("{}")
        assert find_config_file().name == "evaluator-config.yaml"

    def test_user_config(self, isolated, tmp_path):
        user_config = tmp_path / "home" / ".config" / "architecture-evaluator" / "config.yaml"
        user_config.parent.mkdir(parents=True)
        user_config.write_text("{}")
        assert find_config_file() == user_config
