import pytest
from fakes import FakeTransport

from topic_dedupe import ConfigurationError, DedupeError, DedupeRegistry, DedupeSettings


def test_missing_open_is_rejected(transport: FakeTransport) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        DedupeRegistry(None, transport.close)

    assert excinfo.value.missing == ("open",)
    assert excinfo.value.to_payload() == {"detail": "'open' required.", "missing": ["open"]}


def test_missing_both_callbacks_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="'open', 'close' required."):
        DedupeRegistry(None, None)


def test_non_callable_callback_is_rejected(transport: FakeTransport) -> None:
    with pytest.raises(ConfigurationError, match="'close' must be callable"):
        DedupeRegistry(transport.open, "unsubscribe")


def test_configuration_error_is_a_value_error() -> None:
    assert issubclass(ConfigurationError, ValueError)
    assert issubclass(ConfigurationError, DedupeError)


def test_from_options_requires_a_mapping() -> None:
    with pytest.raises(ConfigurationError):
        DedupeRegistry.from_options(None)
    with pytest.raises(ConfigurationError) as excinfo:
        DedupeRegistry.from_options({"open": lambda topic: None})
    assert excinfo.value.missing == ("close",)


def test_from_options_builds_registry(transport: FakeTransport) -> None:
    registry = DedupeRegistry.from_options(
        {"open": transport.open, "close": transport.close, "warn_on_excess_release": False}
    )

    assert registry.warn_on_excess_release is False
    assert len(registry) == 0


def test_settings_default_to_warning() -> None:
    assert DedupeSettings().warn_on_excess_release is True


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOPIC_DEDUPE_WARN_ON_EXCESS_RELEASE", "false")
    monkeypatch.setenv("TOPIC_DEDUPE_DEBUG", "true")

    loaded = DedupeSettings()

    assert loaded.warn_on_excess_release is False
    assert loaded.debug is True


def test_explicit_flag_overrides_settings(transport: FakeTransport) -> None:
    quiet = DedupeSettings(warn_on_excess_release=False)
    registry = DedupeRegistry(
        transport.open, transport.close, warn_on_excess_release=True, settings=quiet
    )

    assert registry.warn_on_excess_release is True
