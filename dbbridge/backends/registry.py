"""Backends — Backend registry and factory.

Central registry mapping a database type name (``"sqlite"``, ``"mongodb"`` …)
to a :class:`BaseDatabase` subclass and the pydantic model that validates its
connection settings.

Usage::

    from dbbridge.backends.registry import register_backend

    @register_backend("sqlite", config_model=SQLiteConfig)
    class SQLiteDatabase(SQLDatabase):
        ...

    db = create_database("sqlite", {"filename": "app.db"})
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from dbbridge.backends.base import BaseDatabase
from dbbridge.exceptions import BackendError, UnsupportedDatabaseError
from dbbridge.logging import get_logger

log = get_logger(__name__)


class BackendRegistry:
    """Class-level registry of backend classes and their config models."""

    _backends: dict[str, tuple[type[BaseDatabase], type[BaseModel]]] = {}

    @classmethod
    def register(
        cls,
        name: str,
        backend_class: type[BaseDatabase],
        config_model: type[BaseModel],
    ) -> None:
        """Register *backend_class* under *name*.

        Raises:
            ValueError: If *name* is empty.
            TypeError:  If *backend_class* is not a ``BaseDatabase`` subclass
                        or *config_model* is not a pydantic model.
        """
        if not name or not isinstance(name, str):
            raise ValueError("Backend name must be a non-empty string.")
        if not isinstance(backend_class, type) or not issubclass(backend_class, BaseDatabase):
            raise TypeError(
                f"Backend class must be a subclass of BaseDatabase, got {backend_class!r}"
            )
        if not isinstance(config_model, type) or not issubclass(config_model, BaseModel):
            raise TypeError(f"config_model must be a pydantic model, got {config_model!r}")
        if name in cls._backends:
            log.warning("backend_registration_overwritten", backend=name)
        cls._backends[name] = (backend_class, config_model)

    @classmethod
    def get(cls, name: str) -> tuple[type[BaseDatabase], type[BaseModel]]:
        try:
            return cls._backends[name]
        except KeyError:
            raise UnsupportedDatabaseError(name, cls.list_backends()) from None

    @classmethod
    def list_backends(cls) -> list[str]:
        return sorted(cls._backends)

    @classmethod
    def unregister(cls, name: str) -> None:
        """Remove one registration. **For testing only.**"""
        cls._backends.pop(name, None)


def register_backend(
    name: str, *, config_model: type[BaseModel]
) -> Callable[[type[BaseDatabase]], type[BaseDatabase]]:
    """Class decorator form of :meth:`BackendRegistry.register`."""

    def _decorator(backend_class: type[BaseDatabase]) -> type[BaseDatabase]:
        BackendRegistry.register(name, backend_class, config_model)
        return backend_class

    return _decorator


def create_database(db_type: str, config: dict[str, Any]) -> BaseDatabase:
    """Instantiate the backend registered under *db_type*.

    The raw *config* mapping is validated through the backend's config model;
    both snake_case and camelCase keys are accepted.

    Raises:
        UnsupportedDatabaseError: Nothing is registered under *db_type*.
        BackendError:             *config* fails validation.
    """
    backend_class, config_model = BackendRegistry.get(db_type)
    try:
        validated = config_model.model_validate(config)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors(include_url=False)
        )
        raise BackendError(
            f"Invalid {db_type} configuration: {details}",
            context={"type": db_type},
        ) from exc
    return backend_class(validated)  # type: ignore[call-arg]
