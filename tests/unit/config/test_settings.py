from __future__ import annotations

from pathlib import Path

import pytest

from aip_reviewer.config.loader import DEFAULT_CONFIG_FILE, ReviewerSettings, load_settings
from aip_reviewer.domain.models import RuleCategory
from aip_reviewer.errors import ConfigLoadError

pytestmark = pytest.mark.unit


def _write(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_any_source(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={})
    assert settings == ReviewerSettings()
    assert settings.pool_size is None
    assert settings.storage_ttl_seconds == 3600.0


def test_default_file_is_read_from_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path / DEFAULT_CONFIG_FILE, '[reviewer]\nstrict = true\ncategories = ["naming", "lro"]\n')
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={})
    assert settings.strict is True
    assert settings.categories == (RuleCategory.NAMING, RuleCategory.LRO)


def test_precedence_overrides_env_file(tmp_path: Path) -> None:
    config = _write(
        tmp_path / "custom.toml",
        '[reviewer]\npool_size = 2\nlog_level = "debug"\nskip_rules = ["a/b"]\nfetch_timeout_seconds = 5\n',
    )
    settings = load_settings(
        config,
        environ={"AIP_REVIEWER_POOL_SIZE": "4", "AIP_REVIEWER_SKIP_RULES": "c/d, e/f", "UNRELATED": "x"},
        overrides={"pool_size": 8, "log_level": None},
    )
    assert settings.pool_size == 8
    assert settings.skip_rules == ("c/d", "e/f")
    assert settings.log_level == "DEBUG"
    assert settings.fetch_timeout_seconds == 5.0


@pytest.mark.parametrize(
    ("name", "raw", "field", "expected"),
    [
        ("AIP_REVIEWER_STRICT", "yes", "strict", True),
        ("AIP_REVIEWER_LOG_JSON", "off", "log_json", False),
        ("AIP_REVIEWER_POOL_SIZE", "auto", "pool_size", None),
        ("AIP_REVIEWER_MAX_DOCUMENT_BYTES", "2048", "max_document_bytes", 2048),
        ("AIP_REVIEWER_STORAGE_TTL_SECONDS", "1.5", "storage_ttl_seconds", 1.5),
        ("AIP_REVIEWER_CATEGORIES", "security,errors", "categories", (RuleCategory.SECURITY, RuleCategory.ERRORS)),
    ],
)
def test_environment_values_are_parsed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, name: str, raw: str, field: str, expected: object
) -> None:
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={name: raw})
    assert getattr(settings, field) == expected


@pytest.mark.parametrize(
    ("environ", "match"),
    [
        ({"AIP_REVIEWER_STRICT": "maybe"}, "boolean"),
        ({"AIP_REVIEWER_POOL_SIZE": "0"}, "positive integer"),
        ({"AIP_REVIEWER_POOL_SIZE": "many"}, "must be a number"),
        ({"AIP_REVIEWER_CATEGORIES": "naming,style"}, "known categories"),
        ({"AIP_REVIEWER_LOG_LEVEL": "loud"}, "logging level"),
        ({"AIP_REVIEWER_FETCH_TIMEOUT_SECONDS": "-1"}, "positive number"),
    ],
)
def test_invalid_environment_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, environ: dict[str, str], match: str
) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigLoadError, match=match):
        load_settings(environ=environ)


def test_file_errors_name_their_source(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="not found"):
        load_settings(tmp_path / "missing.toml", environ={})

    broken = _write(tmp_path / "broken.toml", "[reviewer\n")
    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_settings(broken, environ={})

    unknown = _write(tmp_path / "unknown.toml", "[reviewer]\ncolour = true\n")
    with pytest.raises(ConfigLoadError, match=r"unknown.toml\[reviewer\]: unknown setting 'colour'"):
        load_settings(unknown, environ={})

    scalar = _write(tmp_path / "scalar.toml", 'reviewer = "on"\n')
    with pytest.raises(ConfigLoadError, match="must be a table"):
        load_settings(scalar, environ={})


def test_unknown_override_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigLoadError, match="overrides: unknown setting"):
        load_settings(environ={}, overrides={"workers": 3})


def test_to_dict_uses_plain_values() -> None:
    settings = ReviewerSettings(categories=(RuleCategory.LRO,), skip_rules=("x/y",))
    payload = settings.to_dict()
    assert payload["categories"] == ["lro"]
    assert payload["skip_rules"] == ["x/y"]
    assert payload["pool_size"] is None
