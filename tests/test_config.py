import pytest

from hn_poller.config import HN_ITEM, HN_NEW_STORIES, Settings, load_env_file


def test_defaults():
    settings = Settings.from_env({})
    assert settings.listing_url == HN_NEW_STORIES
    assert settings.item_url == HN_ITEM
    assert settings.poll_interval == 5
    assert settings.fetch_limit == 20
    assert settings.channel_capacity == 500
    assert settings.max_concurrent_fetches == 0
    assert settings.dedup_policy == "prefix"
    assert settings.track_in_flight is True
    assert settings.auth_user is None


def test_env_overrides():
    settings = Settings.from_env(
        {
            "HN_LISTING_URL": "http://localhost/new.json",
            "HN_ITEM_URL": "http://localhost/item/{id}",
            "HN_POLL_INTERVAL": "30",
            "HN_FETCH_LIMIT": "0",
            "HN_CHANNEL_CAPACITY": "10",
            "HN_FETCH_TIMEOUT": "2.5",
            "HN_MAX_CONCURRENT_FETCHES": "8",
            "HN_DEDUP_POLICY": "Difference",
            "HN_TRACK_IN_FLIGHT": "off",
            "HN_USER": "admin",
            "HN_PASSWORD": "secret",
        }
    )
    assert settings.listing_url == "http://localhost/new.json"
    assert settings.item_url == "http://localhost/item/{id}"
    assert settings.poll_interval == 30
    assert settings.fetch_limit == 0
    assert settings.channel_capacity == 10
    assert settings.fetch_timeout == 2.5
    assert settings.max_concurrent_fetches == 8
    assert settings.dedup_policy == "difference"
    assert settings.track_in_flight is False
    assert (settings.auth_user, settings.auth_pass) == ("admin", "secret")


@pytest.mark.parametrize(
    "env",
    [
        {"HN_POLL_INTERVAL": "soon"},
        {"HN_POLL_INTERVAL": "0"},
        {"HN_FETCH_LIMIT": "-1"},
        {"HN_CHANNEL_CAPACITY": "0"},
        {"HN_FETCH_TIMEOUT": "0"},
        {"HN_DEDUP_POLICY": "magic"},
        {"HN_TRACK_IN_FLIGHT": "maybe"},
        {"HN_ITEM_URL": "http://localhost/item"},
    ],
)
def test_invalid_values_raise(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)


def test_env_file_does_not_override_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nHN_POLL_INTERVAL=11\nHN_FETCH_LIMIT = 3\nnot a setting\n"
    )
    monkeypatch.setenv("HN_FETCH_LIMIT", "7")
    monkeypatch.delenv("HN_POLL_INTERVAL", raising=False)

    settings = Settings.from_env(env_file=env_file)
    assert settings.poll_interval == 11
    assert settings.fetch_limit == 7


def test_missing_env_file_is_ignored(tmp_path):
    load_env_file(tmp_path / "missing.env")


@pytest.mark.parametrize(
    "fields",
    [
        {"poll_interval": 0},
        {"fetch_limit": -1},
        {"fetch_timeout": 0},
        {"max_concurrent_fetches": -2},
    ],
)
def test_direct_construction_is_validated(fields):
    with pytest.raises(ValueError):
        Settings(**fields)
