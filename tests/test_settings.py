"""Tests for settings management."""

import random
from typing import Any

import numpy as np
import pytest

from simeval import Settings, active_settings
from simeval.cache import MemorySolutionCache
from simeval.oracle import ReplicationOracle

INVALID_VALUES: dict[str, tuple[Any, type[Exception], str]] = {
    "cache_capacity": (1, ValueError, "must be >= 2"),
    "confidence_level": (1.0, ValueError, "strictly between 0 and 1"),
    "max_oracle_workers": (0, ValueError, "must be >= 1"),
    "no_improve_threshold": (0, ValueError, "must be > 0"),
    "numerical_precision": (0.0, ValueError, "must be > 0"),
    "parallelize_oracle_runs": (0, TypeError, "must be <class 'bool'>"),
    "random_seed": (0.0, TypeError, "must be <class 'int'>"),
    "solutions_capacity": (0, ValueError, "must be >= 1"),
}

TOGGLED_VALUES: dict[str, Any] = {
    "cache_capacity": 17,
    "confidence_level": 0.8,
    "max_oracle_workers": 7,
    "no_improve_threshold": 9,
    "numerical_precision": 1e-3,
    "parallelize_oracle_runs": True,
    "random_seed": 1234,
    "solutions_capacity": 3,
}


def draw_random_numbers() -> tuple[float, ...]:
    """Draw some random number from all relevant numeric libraries."""
    return tuple(random.random() for _ in range(5)) + tuple(np.random.rand(5).tolist())


def assert_attribute_values(obj: Any, attributes: dict[str, Any], /) -> None:
    """Assert that the attributes of an object match the expected values."""
    for key, expected in attributes.items():
        actual = getattr(obj, key)
        assert actual == expected, (
            f"Attribute '{key}' expected to be '{expected}' but got '{actual}'."
        )


@pytest.fixture()
def original_values():
    """The original settings values."""
    return {
        fld.name: getattr(active_settings, fld.name)
        for fld in Settings._settings_attributes
    }


def test_all_settings_covered():
    names = {fld.name for fld in Settings._settings_attributes}
    assert names == set(INVALID_VALUES) == set(TOGGLED_VALUES)


def test_setting_unknown_attribute():
    """Attempting to activate an unknown setting raises an error."""
    with pytest.raises(AttributeError):
        active_settings.unknown_setting = True
    with pytest.raises(TypeError):
        Settings(unknown_setting=True)


@pytest.mark.parametrize("name", INVALID_VALUES)
def test_invalid_setting(name: str):
    """Attempting to use an invalid settings value raises an error."""
    invalid, error, match = INVALID_VALUES[name]
    with pytest.raises(error, match=match):
        Settings(**{name: invalid})


def test_defaults():
    s = Settings(restore_defaults=True)
    assert s.confidence_level == 0.95
    assert s.solutions_capacity == 10
    assert s.cache_capacity == 1000
    assert s.no_improve_threshold == 5
    assert not s.parallelize_oracle_runs


def test_setting_via_context(original_values):
    """Settings are rolled back after exiting a settings context."""
    s = Settings(**TOGGLED_VALUES)
    assert_attribute_values(active_settings, original_values)

    with s:
        assert_attribute_values(active_settings, TOGGLED_VALUES)

    assert_attribute_values(s, TOGGLED_VALUES)
    assert_attribute_values(active_settings, original_values)


def test_nested_contexts():
    """Settings can be nested and properly restored in LIFO order."""
    original_value = active_settings.solutions_capacity

    with Settings(solutions_capacity=3):
        assert active_settings.solutions_capacity == 3

        with Settings(solutions_capacity=4):
            assert active_settings.solutions_capacity == 4

        assert active_settings.solutions_capacity == 3

    assert active_settings.solutions_capacity == original_value


def test_sequential_settings_keep_previous_values():
    """New settings use the currently active values for unspecified attributes."""
    with Settings(cache_capacity=20):
        s = Settings(solutions_capacity=4)
        assert s.cache_capacity == 20
        assert s.solutions_capacity == 4


def test_setting_via_decorator(original_values):
    """Settings can be enabled by decorating callables."""

    @Settings(confidence_level=0.5)
    def func():
        assert active_settings.confidence_level == 0.5

    func()
    assert_attribute_values(active_settings, original_values)


def test_exception_during_context_settings():
    """Exceptions raised inside a context are propagated and settings are restored."""
    original_value = active_settings.cache_capacity

    class CustomError(Exception):
        """A custom exception for testing purposes."""

    with pytest.raises(CustomError, match="Test exception"):
        with Settings(cache_capacity=original_value + 1):
            raise CustomError("Test exception")

    assert active_settings.cache_capacity == original_value


def test_restore_without_activation():
    with pytest.raises(RuntimeError, match="not yet been activated"):
        Settings().restore_previous()


def test_environment_variables(monkeypatch):
    """Settings can be initialized from environment variables."""
    monkeypatch.setenv("SIMEVAL_CACHE_CAPACITY", "50")
    monkeypatch.setenv("SIMEVAL_PARALLELIZE_ORACLE_RUNS", "true")

    s = Settings(restore_environment=True)
    assert s.cache_capacity == 50
    assert s.parallelize_oracle_runs

    # Without the flag, the environment is ignored
    assert Settings().cache_capacity == active_settings.cache_capacity


def test_unknown_environment_variable(monkeypatch):
    """Unknown environment variables raise an error upon settings instantiation."""
    monkeypatch.setenv("SIMEVAL_UNKNOWN_SETTING", "True")
    with pytest.raises(RuntimeError, match="SIMEVAL_UNKNOWN_SETTING"):
        Settings()


def test_settings_control_component_defaults():
    """Components pick up their defaults from the active settings."""
    with Settings(cache_capacity=5, random_seed=99):
        assert MemorySolutionCache().capacity == 5
        assert ReplicationOracle({}).random_seed == 99
    assert ReplicationOracle({}, random_seed=3).random_seed == 3


@pytest.fixture(name="preserved_random_state")
def fixture_preserved_random_state():
    """Restore the global random states after the test."""
    builtin_state, numpy_state = random.getstate(), np.random.get_state()
    yield
    random.setstate(builtin_state)
    np.random.set_state(numpy_state)


@pytest.mark.usefixtures("preserved_random_state")
def test_random_seed_control():
    """Random seeds are respected when set via context."""
    with Settings(random_seed=1337):
        x_1337 = draw_random_numbers()
    with Settings(random_seed=1337):
        assert draw_random_numbers() == x_1337
    with Settings(random_seed=1338):
        assert draw_random_numbers() != x_1337
