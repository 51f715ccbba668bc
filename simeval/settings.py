"""SimEval settings."""

from __future__ import annotations

import gc
import os
from copy import deepcopy
from functools import wraps
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from attrs import Attribute, Factory, define, field, fields
from attrs.setters import validate
from attrs.validators import ge, gt, instance_of
from attrs.validators import optional as optional_v

from simeval.utils.basic import classproperty
from simeval.utils.boolean import strtobool
from simeval.utils.random import set_random_seed
from simeval.utils.validation import confidence_level_validator

if TYPE_CHECKING:
    from types import TracebackType

    _TSeed = TypeVar("_TSeed", int, None)

# Placeholder, since the name is referenced while the `Settings` class is created
active_settings: Settings = None  # type: ignore[assignment]
"""The global settings instance controlling execution behavior."""

_ENV_PREFIX = "SIMEVAL_"
"""The prefix of all environment variables controlling the settings."""

_ENV_VARS_WHITELIST = {
    "SIMEVAL_TEST_ENV",  # defines testing scope
}
"""Environment variables with the settings prefix that do not represent a setting."""


class _SlottedContextDecorator:
    """Allows using a context manager as function decorator, while keeping slots.

    Mirrors :class:`contextlib.ContextDecorator`, which does not define ``__slots__``.
    """

    __slots__ = ()

    def __call__(self, func):
        @wraps(func)
        def inner(*args, **kwargs):
            with self:
                return func(*args, **kwargs)

        return inner


_ENV_CONVERTERS = {"bool": strtobool, "int": int, "float": float, "int | None": int}
"""Parsers for environment variable strings, indexed by the annotated field type."""


def _env_name(fld: Attribute) -> str:
    return f"{_ENV_PREFIX}{(fld.alias or fld.name).upper()}"


def adjust_defaults(cls: type[Settings], fields: list[Attribute]) -> list[Attribute]:
    """Let the default of each setting depend on the control flags of the instance.

    Without flags, an unspecified setting keeps its currently active value. The
    ``restore_defaults`` flag falls back to the declared default instead, and the
    ``restore_environment`` flag gives precedence to the corresponding environment
    variable.
    """
    adjusted = []
    for fld in fields:
        if fld.name in cls._internal_attributes:
            adjusted.append(fld)
            continue

        # The factory defers the lookups to instantiation time
        def make_factory(fld: Attribute) -> Any:
            def factory(self: Settings) -> Any:
                if self._restore_defaults:
                    value = fld.default
                else:
                    value = getattr(active_settings, fld.name, fld.default)

                if self._restore_environment and (
                    (raw := os.getenv(_env_name(fld))) is not None
                ):
                    parse = _ENV_CONVERTERS.get(str(fld.type))
                    value = raw if parse is None else parse(raw)
                return value

            return Factory(factory, takes_self=True)

        adjusted.append(fld.evolve(default=make_factory(fld)))
    return adjusted


def _on_set_random_seed(instance: Settings, __: Attribute, value: _TSeed) -> _TSeed:
    """Seed the global generators when the seed of the global settings changes."""
    if id(instance) == Settings._global_settings_id and value is not None:
        set_random_seed(value)
    return value


@define(kw_only=True, field_transformer=adjust_defaults)
class Settings(_SlottedContextDecorator):
    """SimEval settings.

    The global settings live in :data:`active_settings`. A settings object changes
    them permanently via :meth:`activate` or temporarily when used as a context
    manager or function decorator. Each setting can also be provided through an
    environment variable named ``SIMEVAL_<SETTING_NAME>``, which is read when the
    package is imported or when ``restore_environment=True`` is passed.
    """

    # >>>>> Internal
    _global_settings_id: ClassVar[int]
    """The id of :data:`active_settings`."""

    _previous_settings: Settings | None = field(default=None, init=False)
    """A copy of the global settings taken upon activation."""
    # <<<<< Internal

    # >>>>> Control flags
    _restore_defaults: bool = field(default=False, validator=instance_of(bool))
    """Controls if unspecified settings use their declared defaults."""

    _restore_environment: bool = field(default=False, validator=instance_of(bool))
    """Controls if unspecified settings are read from environment variables."""
    # <<<<< Control flags

    # >>>>> Settings attributes
    confidence_level: float = field(
        default=0.95, converter=float, validator=confidence_level_validator
    )
    """The default confidence level for half widths and interval comparisons."""

    solutions_capacity: int = field(default=10, converter=int, validator=ge(1))
    """The default capacity of :class:`~simeval.solutions.solutions.Solutions`."""

    cache_capacity: int = field(default=1000, converter=int, validator=ge(2))
    """The default capacity of
    :class:`~simeval.cache.memory.MemorySolutionCache`."""

    no_improve_threshold: int = field(default=5, converter=int, validator=gt(0))
    """The default number of non-improving solutions tolerated by a
    :class:`~simeval.solutions.checker.SolutionChecker`."""

    numerical_precision: float = field(default=1e-10, converter=float, validator=gt(0))
    """The default precision below which penalized objectives are considered equal."""

    parallelize_oracle_runs: bool = field(default=False, validator=instance_of(bool))
    """Controls if independent oracle runs of distinct points are executed in
    parallel threads."""

    max_oracle_workers: int = field(default=4, converter=int, validator=ge(1))
    """The maximum number of threads used for parallel oracle runs."""

    random_seed: int | None = field(
        default=None,
        validator=optional_v(instance_of(int)),
        on_setattr=[validate, _on_set_random_seed],
    )
    """The seed of the global random number generators and the default seed of
    :class:`~simeval.oracle.replication.ReplicationOracle`."""
    # <<<<< Settings attributes

    def __attrs_pre_init__(self) -> None:
        known = {_env_name(fld) for fld in self._settings_attributes}
        present = {name for name in os.environ if name.startswith(_ENV_PREFIX)}
        if unknown := present - known - _ENV_VARS_WHITELIST:
            raise RuntimeError(f"Unknown environment variables: {unknown}")

    def __enter__(self) -> Settings:
        self.activate()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.restore_previous()

    @classproperty
    def _internal_attributes(cls) -> frozenset[str]:
        """The names of attributes not representing settings."""  # noqa: D401
        return frozenset(
            {"_previous_settings", "_restore_defaults", "_restore_environment"}
        )

    @classproperty
    def _settings_attributes(cls) -> tuple[Attribute, ...]:
        """The attributes representing settings."""  # noqa: D401
        return tuple(
            fld
            for fld in fields(Settings)
            if fld.name not in Settings._internal_attributes
        )

    def activate(self) -> Settings:
        """Make the settings globally active, remembering the previous ones."""
        self._previous_settings = deepcopy(active_settings)
        self.overwrite(active_settings)
        return self

    def restore_previous(self) -> None:
        """Reactivate the global settings that were active before :meth:`activate`.

        Raises:
            RuntimeError: If the settings have not been activated.
        """
        if self._previous_settings is None:
            raise RuntimeError(
                "The settings have not yet been activated, "
                "so there are no previous settings to restore."
            )
        self._previous_settings.overwrite(active_settings)
        self._previous_settings = None

    def overwrite(self, target: Settings) -> None:
        """Copy all settings values onto another settings object."""
        for fld in self._settings_attributes:
            setattr(target, fld.name, getattr(self, fld.name))


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()


active_settings = Settings(restore_environment=True)
Settings._global_settings_id = id(active_settings)
