import pytest

SETTINGS_VARIABLES = ("GITHUB_TOKEN", "GITLAB_TOKEN", "GITLAB_URL", "REPODEPS_TIMEOUT", "REPODEPS_MAX_FILE_BYTES")


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """Keep the developer's tokens and limits out of every test."""
    for name in SETTINGS_VARIABLES:
        monkeypatch.delenv(name, raising=False)
