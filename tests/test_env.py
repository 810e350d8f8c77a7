import pytest

from arcrest import env
from arcrest.env import EnvConfig


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for var in (
        "ARCGIS_API_KEY",
        "ARCGIS_PUBLIC_KEY",
        "ARCGIS_LOCATION_KEY",
        "ARCGIS_CONTENT_KEY",
        "ARCGIS_FEATURES_KEY",
        "ARCGIS_CLIENT_ID",
        "ARCGIS_CLIENT_SECRET",
    ):
        # set first so the teardown also removes what a .env file loaded
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults() -> None:
    assert env.timeout == 600
    assert env.retries == 3
    assert env.active_gis is None


def test_preferred_api_key_order() -> None:
    config = EnvConfig(api_key="a", public_key="p", features_key="f")
    assert config.preferred_api_key() == "f"
    assert EnvConfig(api_key="a").preferred_api_key() == "a"
    assert EnvConfig().preferred_api_key() is None


def test_values_are_hidden_from_repr() -> None:
    config = EnvConfig(client_id="cid", client_secret="shh")
    assert "shh" not in repr(config)
    assert config.configured == ["ARCGIS_CLIENT_ID", "ARCGIS_CLIENT_SECRET"]


def test_load_reads_a_dotenv_file(clean_env, tmp_path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("ARCGIS_CONTENT_KEY=from-file\n")

    config = EnvConfig.load(str(dotenv))

    assert config.content_key == "from-file"


def test_process_variables_win_over_the_file(clean_env, tmp_path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("ARCGIS_PUBLIC_KEY=from-file\n")
    clean_env.setenv("ARCGIS_PUBLIC_KEY", "from-process")

    assert EnvConfig.load(str(dotenv)).public_key == "from-process"


def test_from_env_is_cached_until_reset(clean_env) -> None:
    clean_env.setenv("ARCGIS_API_KEY", "first")
    assert EnvConfig.from_env().api_key == "first"

    clean_env.setenv("ARCGIS_API_KEY", "second")
    assert EnvConfig.from_env().api_key == "first"

    EnvConfig.reset()
    assert EnvConfig.from_env().api_key == "second"
