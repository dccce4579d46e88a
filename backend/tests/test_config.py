import os

from backend.hand_history import config


def test_parse_env_lines_handles_comments_quotes_and_export() -> None:
    values = config.parse_env_lines(
        [
            "# analysis settings",
            "GEMINI_MODEL='gemini-2.5-pro'",
            'export LLM_RETRIES="2"',
            "AUTO_ANALYZE_ON_QUESTION=0",
            "not a setting",
            "=orphan",
        ]
    )
    assert values == {
        "GEMINI_MODEL": "gemini-2.5-pro",
        "LLM_RETRIES": "2",
        "AUTO_ANALYZE_ON_QUESTION": "0",
    }


def test_exported_variables_win_over_env_file(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("MAX_SESSIONS=5\nLLM_CACHE_SIZE=7\n", encoding="utf-8")
    monkeypatch.setenv("MAX_SESSIONS", "50")
    monkeypatch.delenv("LLM_CACHE_SIZE", raising=False)

    config._load_env_file(env_file)

    assert os.environ["MAX_SESSIONS"] == "50"
    assert os.environ["LLM_CACHE_SIZE"] == "7"
    os.environ.pop("LLM_CACHE_SIZE", None)
