from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from checkfuse.config import (
    ConfigurationError,
    MissingConfigurationError,
    StorageConfig,
    env_float,
    get_database_config,
    get_fusion_service_config,
    get_storage_config,
    optional_env_var,
    require_env_vars,
)
from checkfuse.config.fusion_service import FUSION_SERVICE_TIMEOUT_SECONDS

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_returns_stripped_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "  value ")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_ONE", raising=False)
    monkeypatch.setenv("MISSING_TWO", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_TWO", "MISSING_ONE"])

    assert "MISSING_ONE, MISSING_TWO" in str(exc.value)


def test_optional_env_var_treats_blank_as_absent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " ")

    assert optional_env_var("EXAMPLE_VAR") is None


def test_env_float_parses_and_validates(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_TIMEOUT", raising=False)
    assert env_float("EXAMPLE_TIMEOUT", 5.0) == 5.0

    monkeypatch.setenv("EXAMPLE_TIMEOUT", "12.5")
    assert env_float("EXAMPLE_TIMEOUT", 5.0) == 12.5

    monkeypatch.setenv("EXAMPLE_TIMEOUT", "soon")
    with pytest.raises(ConfigurationError):
        env_float("EXAMPLE_TIMEOUT", 5.0)

    monkeypatch.setenv("EXAMPLE_TIMEOUT", "-1")
    with pytest.raises(ConfigurationError):
        env_float("EXAMPLE_TIMEOUT", 5.0)


def test_fusion_service_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FUSION_SERVICE_URL", "https://fusion.example.test/hook")
    monkeypatch.delenv("FUSION_SERVICE_TIMEOUT", raising=False)
    monkeypatch.setenv("FUSION_SERVICE_TOKEN", "abc")

    config = get_fusion_service_config()

    assert config.url == "https://fusion.example.test/hook"
    assert config.resilience.timeout_seconds == FUSION_SERVICE_TIMEOUT_SECONDS
    assert config.headers == {"Accept": "application/json", "Authorization": "Bearer abc"}


def test_fusion_service_config_requires_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FUSION_SERVICE_URL", raising=False)

    with pytest.raises(MissingConfigurationError):
        get_fusion_service_config()


def test_storage_config_uses_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CHECKFUSE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()

    assert storage.export_dir() == (tmp_path / "data" / "exports").resolve()
    assert storage.export_dir().is_dir()
    assert get_database_config().uri.endswith("checkfuse.db")


def test_database_uri_env_overrides_storage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"


def test_export_path_names_file_after_session(tmp_path: Path) -> None:
    storage = StorageConfig(data_dir=tmp_path)
    session_id = uuid4()

    path = storage.export_path(session_id)

    assert path == tmp_path.resolve() / "exports" / f"fusion_{session_id}.json"
    assert path.parent.is_dir()
