"""Evaluator settings: score weights, maturity cut-offs, narrative and pipeline options.

Settings come from one YAML file, located by :func:`find_config_file`, and
are cached process-wide once read. Rule and price tables are code, not
settings.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class ScoringWeightsConfig(BaseModel):
    """Weights for the overall score.

    Each category score is normalized to 0..1 before weighting. The weights
    should sum to 1.0 so that the overall score stays within 0..100.
    """
    scalability: float = Field(
        0.30,
        description="Weight for scalability (auto-scaling, load balancing, caching, CDN)"
    )
    reliability: float = Field(
        0.25,
        description="Weight for reliability (redundancy, backups, monitoring)"
    )
    security: float = Field(
        0.25,
        description="Weight for security (encryption, network isolation, IAM)"
    )
    cost_efficiency: float = Field(
        0.20,
        description="Weight for cost efficiency (elastic capacity, discounts, serverless)"
    )


class MaturityThresholdsConfig(BaseModel):
    """Overall-score thresholds for maturity levels.

    An overall score below ``prototype_below`` is a Prototype, below
    ``early_stage_below`` is Early Stage, below ``production_ready_below`` is
    Production Ready, anything else is Enterprise Grade.
    """
    prototype_below: int = Field(30, description="Scores below this are Prototype")
    early_stage_below: int = Field(55, description="Scores below this are Early Stage")
    production_ready_below: int = Field(80, description="Scores below this are Production Ready")


class NarrativeConfig(BaseModel):
    """Configuration for the optional narrative collaborator."""
    enabled: bool = Field(
        False,
        description="Call the narrative collaborator after the deterministic pipeline"
    )
    endpoint: str = Field(
        "https://api.openai.com/v1/chat/completions",
        description="OpenAI-compatible chat completions endpoint"
    )
    model: str = Field("gpt-4o-mini", description="Model name sent to the endpoint")
    api_key_env: str = Field(
        "NARRATIVE_API_KEY",
        description="Environment variable holding the bearer token"
    )
    timeout_seconds: float = Field(
        15.0,
        description="Overall time budget for the narrative call"
    )


class PipelineConfig(BaseModel):
    """Execution options for the deterministic pipeline."""
    parallel: bool = Field(
        False,
        description="Run scoring, risk and cost stages in a thread pool"
    )
    max_workers: int = Field(3, description="Thread pool size when parallel is enabled")


class EvaluatorConfig(BaseModel):
    """Complete configuration for the architecture evaluator."""
    scoring_weights: ScoringWeightsConfig = Field(default_factory=ScoringWeightsConfig)
    maturity_thresholds: MaturityThresholdsConfig = Field(default_factory=MaturityThresholdsConfig)
    narrative: NarrativeConfig = Field(default_factory=NarrativeConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)


CONFIG_ENV_VAR = "ARCHITECTURE_EVALUATOR_CONFIG"
LOCAL_CONFIG_NAMES = ("evaluator-config.yaml", "evaluator-config.yml")

# Cached settings; None until first read.
_config: Optional[EvaluatorConfig] = None


def _user_config_path() -> Path:
    return Path.home() / ".config" / "architecture-evaluator" / "config.yaml"


def get_config() -> EvaluatorConfig:
    """Return the cached settings, reading them on first use."""
    global _config
    if _config is None:
        path = find_config_file()
        _config = load_config(path) if path else EvaluatorConfig()
    return _config


def load_config(path: Path) -> EvaluatorConfig:
    """Read settings from ``path`` and make them the cached settings.

    An empty file yields the built-in defaults. Values of the wrong type
    fail pydantic validation.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    _config = EvaluatorConfig.model_validate(data or {})
    return _config


def reset_config() -> None:
    """Discard loaded settings in favour of the built-in defaults."""
    global _config
    _config = EvaluatorConfig()


def find_config_file() -> Optional[Path]:
    """Locate the evaluator settings file, or None when there is none.

    The ``ARCHITECTURE_EVALUATOR_CONFIG`` path is tried first, then the local
    ``evaluator-config`` files, then the per-user file. Candidates that do not
    exist are skipped.
    """
    candidates = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path))
    candidates.extend(Path(name) for name in LOCAL_CONFIG_NAMES)
    candidates.append(_user_config_path())

    return next((path for path in candidates if path.exists()), None)


def save_default_config(path: Path) -> None:
    """Write the built-in settings to ``path`` under an explanatory header."""
    data = EvaluatorConfig().model_dump()

    header = [
        "# Architecture Evaluator Configuration",
        "#",
        "# Weights blend the four category scores into the overall score and",
        "# should add up to 1.0. Maturity cut-offs map the overall score to a",
        "# level. The narrative block is off unless enabled and keyed.",
        "#",
        "# Score, risk and price tables ship with the package; edit them in code.",
        "#",
        f"# Read from ${CONFIG_ENV_VAR}, ./{LOCAL_CONFIG_NAMES[0]},",
        "# or ~/.config/architecture-evaluator/config.yaml, in that order.",
        "",
    ]
    yaml_content = "\n".join(header) + "\n"
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
