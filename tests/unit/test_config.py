from dataclasses import replace

from resource_metrics.config import ConfigError, MetricsConfig, Settings


def _validation_message(config: MetricsConfig) -> str:
    try:
        config.validate()
    except ConfigError as exc:
        return str(exc)
    assert False, "Expected ConfigError"


def test_default_config_values() -> None:
    config = MetricsConfig.default()
    assert config.allowed_types == ("post",)
    assert config.max_key_length == 255
    assert config.only_positive_values is False
    assert config.pagination_limit == 50
    assert config.max_pagination_limit == 200
    config.validate()


def test_validate_rejects_empty_allowed_types() -> None:
    message = _validation_message(replace(MetricsConfig.default(), allowed_types=()))
    assert message == "allowed_types cannot be empty"


def test_validate_rejects_empty_type_entry() -> None:
    message = _validation_message(replace(MetricsConfig.default(), allowed_types=("post", "")))
    assert message == "allowed_types cannot contain empty strings"


def test_validate_names_first_duplicate() -> None:
    config = replace(MetricsConfig.default(), allowed_types=("post", "user", "user", "post"))
    assert _validation_message(config) == "duplicate type in allowed_types: user"


def test_validate_key_length_bounds() -> None:
    assert "max_key_length" in _validation_message(replace(MetricsConfig.default(), max_key_length=0))
    assert "max_key_length" in _validation_message(replace(MetricsConfig.default(), max_key_length=256))
    replace(MetricsConfig.default(), max_key_length=1).validate()


def test_validate_pagination_limit_above_max() -> None:
    config = replace(MetricsConfig.default(), pagination_limit=100, max_pagination_limit=50)
    assert _validation_message(config) == "pagination_limit must be between 1 and max_pagination_limit"


def test_validate_max_pagination_limit_ceiling() -> None:
    config = replace(MetricsConfig.default(), pagination_limit=50, max_pagination_limit=1001)
    assert _validation_message(config) == "max_pagination_limit must be between 1 and 1000"


def test_validate_reports_only_first_failure() -> None:
    config = MetricsConfig(allowed_types=(), max_key_length=0, pagination_limit=0)
    assert _validation_message(config) == "allowed_types cannot be empty"


def test_is_allowed_type_is_exact_and_case_sensitive() -> None:
    config = MetricsConfig(allowed_types=("post", "user"))
    assert config.is_allowed_type("post") is True
    assert config.is_allowed_type("user") is True
    assert config.is_allowed_type("Post") is False
    assert config.is_allowed_type("pos") is False
    assert config.is_allowed_type("") is False


def test_lenient_mapping_overlays_recognized_keys() -> None:
    config = MetricsConfig.from_mapping(
        {
            "allowed_types": ["post", "product"],
            "max_key_length": 100,
            "pagination_limit": 25,
        }
    )
    assert config.allowed_types == ("post", "product")
    assert config.max_key_length == 100
    assert config.pagination_limit == 25
    assert config.max_pagination_limit == 200


def test_lenient_mapping_skips_mistyped_and_unknown_keys() -> None:
    config = MetricsConfig.from_mapping(
        {
            "allowed_types": "post,user",
            "max_key_length": "100",
            "only_positive_values": "yes",
            "pagination_limit": True,
            "database": "postgres://nowhere",
            "unknown": 1,
        }
    )
    assert config == MetricsConfig.default()
    assert config.database is None


def test_lenient_mapping_drops_non_string_types() -> None:
    config = MetricsConfig.from_mapping({"allowed_types": ["post", 3, None, "user"]})
    assert config.allowed_types == ("post", "user")

    kept_default = MetricsConfig.from_mapping({"allowed_types": [1, 2]})
    assert kept_default.allowed_types == ("post",)


def test_strict_mapping_rejects_mistyped_value() -> None:
    try:
        MetricsConfig.from_mapping({"max_key_length": "100"}, strict=True)
    except ConfigError as exc:
        assert "max_key_length" in str(exc)
        return
    assert False, "Expected ConfigError for mistyped key"


def test_strict_mapping_rejects_unknown_key() -> None:
    try:
        MetricsConfig.from_mapping({"max_keylength": 100}, strict=True)
    except ConfigError as exc:
        assert "max_keylength" in str(exc)
        return
    assert False, "Expected ConfigError for unknown key"


def test_strict_mapping_accepts_well_typed_values() -> None:
    config = MetricsConfig.from_mapping(
        {"allowed_types": ["post", "user"], "only_positive_values": True},
        strict=True,
    )
    assert config.allowed_types == ("post", "user")
    assert config.only_positive_values is True
    assert config.max_key_length == 255


def test_settings_build_metrics_config() -> None:
    settings = Settings(
        database_url="sqlite+aiosqlite://",
        metrics_allowed_types=["post", "comment"],
        metrics_only_positive_values=True,
    )
    config = settings.metrics_config()
    assert config.allowed_types == ("post", "comment")
    assert config.only_positive_values is True


def test_settings_metrics_config_fails_fast() -> None:
    settings = Settings(database_url="sqlite+aiosqlite://", metrics_allowed_types=[])
    try:
        settings.metrics_config()
    except ConfigError as exc:
        assert str(exc) == "allowed_types cannot be empty"
        return
    assert False, "Expected ConfigError for empty allowed types"
