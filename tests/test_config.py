import logging

import pytest

from cursed_reviewer import DEFAULT_DEADLINE_SECONDS, DEFAULT_MODEL
from cursed_reviewer.config import ReviewerConfig, load_config, read_env_setting
from cursed_reviewer.pipeline import build_pipeline


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = load_config()

    assert config.model == DEFAULT_MODEL
    assert config.max_retries == 3
    assert config.initial_delay == 1.0
    assert config.max_delay == 5.0
    assert config.backoff_multiplier == 2.0
    assert config.deadline_seconds == DEFAULT_DEADLINE_SECONDS
    assert config.analysis_max_tokens == 4096
    assert config.oracle_temperature == 0.8
    assert config.payload_threshold == 100_000
    assert config.github_token is None


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CURSED_MODEL", "openai/gpt-4o-mini")
    monkeypatch.setenv("CURSED_MAX_RETRIES", "5")
    monkeypatch.setenv("CURSED_DEADLINE_SECONDS", "12.5")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_haunted")

    config = load_config()

    assert config.model == "openai/gpt-4o-mini"
    assert config.max_retries == 5
    assert config.deadline_seconds == 12.5
    assert config.github_token == "ghp_haunted"


def test_unparseable_and_out_of_range_values_fall_back(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CURSED_MAX_RETRIES", "lots")
    monkeypatch.setenv("CURSED_DEADLINE_SECONDS", "-3")
    monkeypatch.setenv("CURSED_BACKOFF_MULTIPLIER", "0.5")

    config = load_config()

    assert config.max_retries == 3
    assert config.deadline_seconds == DEFAULT_DEADLINE_SECONDS
    assert config.backoff_multiplier == 1.0


def test_env_file_is_loaded_without_overriding(tmp_path, monkeypatch):
    env_file = tmp_path / "reviewer.env"
    env_file.write_text("CURSED_ORACLE_MAX_TOKENS=250\nCURSED_MODEL=from-file\n")
    monkeypatch.setenv("CURSED_MODEL", "from-shell")
    # load_dotenv writes into os.environ; register the key so monkeypatch cleans it up
    monkeypatch.setenv("CURSED_ORACLE_MAX_TOKENS", "")
    monkeypatch.delenv("CURSED_ORACLE_MAX_TOKENS")

    config = load_config(env_file)

    assert config.oracle_max_tokens == 250
    assert config.model == "from-shell"


def test_read_env_setting_casts(monkeypatch):
    monkeypatch.setenv("CURSED_FLAG", "yes")
    monkeypatch.setenv("CURSED_EMPTY", "")
    assert read_env_setting("CURSED_FLAG", False, bool) is True
    assert read_env_setting("CURSED_EMPTY", 7, int) == 7
    assert read_env_setting("CURSED_MISSING", "dflt") == "dflt"


def test_read_env_setting_rejects_and_logs(monkeypatch, caplog):
    caplog.set_level(logging.WARNING, logger="cursed_reviewer")
    monkeypatch.setenv("CURSED_COUNT", "-2")

    assert read_env_setting("CURSED_COUNT", 5, int, lambda v: v > 0) == 5
    assert "CURSED_COUNT" in caplog.text
    assert "out of range" in caplog.text


@pytest.mark.parametrize(
    "key, value, field",
    [
        ("CURSED_ANALYSIS_MAX_TOKENS", "0", "analysis_max_tokens"),
        ("CURSED_ORACLE_MAX_TOKENS", "-50", "oracle_max_tokens"),
        ("CURSED_ANALYSIS_TEMPERATURE", "2.5", "analysis_temperature"),
        ("CURSED_ORACLE_TEMPERATURE", "-0.1", "oracle_temperature"),
        ("CURSED_PAYLOAD_THRESHOLD", "0", "payload_threshold"),
    ],
)
def test_generation_settings_out_of_range_use_defaults(tmp_path, monkeypatch, caplog, key, value, field):
    monkeypatch.chdir(tmp_path)
    caplog.set_level(logging.WARNING, logger="cursed_reviewer")
    monkeypatch.setenv(key, value)

    config = load_config()

    assert getattr(config, field) == getattr(ReviewerConfig(), field)
    assert key in caplog.text


def test_reviewer_config_rejects_unusable_budgets():
    with pytest.raises(ValueError):
        ReviewerConfig(analysis_max_tokens=0)
    with pytest.raises(ValueError):
        ReviewerConfig(oracle_temperature=3.0)


@pytest.mark.asyncio
async def test_zero_token_budget_still_reaches_the_endpoint(tmp_path, monkeypatch, scripted_completion):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CURSED_ANALYSIS_MAX_TOKENS", "0")
    completion = scripted_completion("[]")

    pipeline = build_pipeline(load_config(), completion_fn=completion)
    await pipeline.analyze("var x = 1;", "javascript")

    completion.assert_awaited()
    assert completion.call_args.kwargs["max_tokens"] == 4096
