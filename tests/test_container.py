import pytest

from glowworm.config import Settings
from glowworm.container import build_container, missing_credentials
from glowworm.utils.exceptions import ConfigurationError


def _settings(tmp_path, **overrides) -> Settings:
    values = {
        "openai_api_key": "",
        "daytona_api_key": "",
        "luma_api_key": "",
        "data_dir": str(tmp_path),
    }
    values.update(overrides)
    return Settings(**values)


def test_missing_credentials_lists_blank_keys(tmp_path):
    settings = _settings(tmp_path, openai_api_key="sk-test", luma_api_key="   ")
    assert missing_credentials(settings) == ["daytona_api_key", "luma_api_key"]


def test_strict_config_fails_fast(tmp_path):
    with pytest.raises(ConfigurationError, match="daytona_api_key"):
        build_container(_settings(tmp_path, strict_config=True, openai_api_key="sk-test", luma_api_key="lk"))


def test_lenient_config_builds_without_providers(tmp_path):
    services = build_container(_settings(tmp_path))

    assert services.openai_client is None
    assert services.sandbox_provider is None
    assert services.luma is None
    assert services.analysis.sandbox_available is False
    assert services.analysis.vision.configured is False
    with pytest.raises(ConfigurationError, match="Luma API key not configured"):
        services.require_luma()


@pytest.mark.asyncio
async def test_configured_clients_are_built_once(tmp_path, fake_provider_factory):
    provider = fake_provider_factory()
    settings = _settings(tmp_path, openai_api_key="sk-test", luma_api_key="lk-test", daytona_api_key="dtn-test")

    services = build_container(settings, sandbox_provider=provider)

    assert services.openai_client is not None
    assert services.sandbox_provider is provider
    assert services.analysis.sandbox_available is True
    assert services.require_luma() is services.luma
    assert services.storage.root_dir.startswith(str(tmp_path))
    await services.aclose()
