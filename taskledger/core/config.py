"""Unified configuration layer for TaskLedger.

Settings are declared as pydantic models, dumped into a nested ``Config`` mapping, and overlaid with environment
variables of the form ``SECTION__KEY`` (e.g. ``TASKLEDGER__MONGO_URI``). Secret fields declared as ``SecretStr`` are
masked in the mapping and can only be read back through ``Config.get_secret``.
"""

import os
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings

SECRET_MASK = "********"

# Union alias used for configuration overrides and settings
SettingsLike = Union[
    Dict[str, Any],
    List[Union[Dict[str, Any], BaseSettings, BaseModel]],
    BaseSettings,
    BaseModel,
    None,
]


class _AttrView:
    """
    Lightweight attribute-access wrapper around a mapping.

    Enables access like obj.SECTION.KEY for nested dictionaries.
    """

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._data:
            value = self._data[name]
            if isinstance(value, dict):
                return _AttrView(value)
            return value
        raise AttributeError(f"No such attribute: {name}")

    def __getitem__(self, key: str):
        value = self._data[key]
        if isinstance(value, dict):
            return _AttrView(value)
        return value

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __repr__(self) -> str:
        return f"_AttrView({self._data!r})"


class Config(dict):
    """
    Nested configuration mapping built from pydantic models, dicts and environment overrides.

    All leaf values are stored as strings (callers coerce with ``int(...)`` etc.). Secret values are masked in the
    mapping and retrievable with ``get_secret``.

    Args:
        extra_settings: Configuration objects to merge, in increasing order of precedence.
        apply_env: Whether to overlay ``SECTION__KEY`` environment variables on top of ``extra_settings``.

    Example:
        .. code-block:: python

            from taskledger.core.config import Config

            config = Config.load(defaults=TaskLedgerConfig(), overrides={"TASKLEDGER": {"MONGO_DB": "test"}})
            print(config.TASKLEDGER.MONGO_DB)                 # "test"
            print(config.TASKLEDGER.JWT_SECRET)               # "********"
            config.get_secret("TASKLEDGER", "JWT_SECRET")     # real secret value
    """

    def __init__(
        self,
        extra_settings: SettingsLike = None,
        *,
        apply_env: bool = True,
        secret_paths: Optional[set[Tuple[str, ...]]] = None,
    ):
        self._secret_paths: set[Tuple[str, ...]] = set(secret_paths or ())
        self._secrets: Dict[Tuple[str, ...], str] = {}

        merged: Dict[str, Any] = {}
        for override in self._normalize(extra_settings):
            merged = self._deep_update_dict(merged, override)

        # Overlay environment variables last so they can override provided settings
        if apply_env:
            merged = self._apply_env_overrides(merged)

        super().__init__(self._stringify_and_mask(merged))

    def __getattr__(self, name: str):
        """Enable attribute-style access for top-level keys."""
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self:
            value = self[name]
            if isinstance(value, dict):
                return _AttrView(value)
            return value
        raise AttributeError(f"No such attribute: {name}")

    @classmethod
    def load(
        cls,
        *,
        defaults: Optional[Union[Dict[str, Any], BaseSettings, BaseModel]] = None,
        overrides: SettingsLike = None,
    ) -> "Config":
        """Create a Config from defaults, environment variables and runtime overrides (highest precedence)."""
        secret_paths: set[Tuple[str, ...]] = set()
        base: Dict[str, Any] = {}
        if isinstance(defaults, (BaseSettings, BaseModel)):
            secret_paths |= cls._collect_secret_paths_from_model(type(defaults))
            base = defaults.model_dump()
        elif isinstance(defaults, dict):
            base = deepcopy(defaults)

        base = cls._apply_env_overrides(base)

        for item in cls._normalize(overrides):
            base = cls._deep_update_dict(base, item)

        # Prevent __init__ from re-applying env so overrides remain highest
        return cls([base], apply_env=False, secret_paths=secret_paths)

    def get_secret(self, *path: str) -> Optional[str]:
        """Retrieve a secret by path components, e.g., get_secret("TASKLEDGER", "JWT_SECRET")."""
        return self._secrets.get(tuple(path))

    @staticmethod
    def _normalize(settings: SettingsLike) -> List[Dict[str, Any]]:
        if settings is None:
            return []
        if isinstance(settings, (BaseSettings, BaseModel)):
            return [settings.model_dump()]
        if isinstance(settings, dict):
            return [deepcopy(settings)]
        if isinstance(settings, list):
            items: List[Dict[str, Any]] = []
            for item in settings:
                items.extend(Config._normalize(item))
            return items
        raise TypeError(f"Unsupported settings type: {type(settings).__name__}")

    @staticmethod
    def _deep_update_dict(base: dict, override: dict) -> dict:
        for k, v in (override or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                base[k] = Config._deep_update_dict(base.get(k, {}), v)
            else:
                base[k] = v
        return base

    @staticmethod
    def _apply_env_overrides(base: dict, delimiter: str = "__") -> dict:
        """Overlay ``SECTION__KEY`` env vars, but only onto sections that already exist in ``base``."""
        result = deepcopy(base)

        for env_key, env_value in os.environ.items():
            if delimiter not in env_key:
                continue
            parts = [p.strip().upper() for p in env_key.split(delimiter) if p.strip()]
            if len(parts) < 2 or parts[0] not in result or not isinstance(result[parts[0]], dict):
                continue
            node = result
            for key in parts[:-1]:
                if key not in node or not isinstance(node[key], dict):
                    node[key] = {}
                node = node[key]
            node[parts[-1]] = env_value

        return result

    def _stringify_and_mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        def convert(v: Any, path: Tuple[str, ...]) -> Any:
            if isinstance(v, SecretStr):
                self._secrets[path] = v.get_secret_value()
                return SECRET_MASK
            if isinstance(v, dict):
                return {k: convert(x, path + (k,)) for k, x in v.items()}
            if isinstance(v, (list, tuple, set)):
                return [convert(x, path) for x in v]
            if v is None:
                return None
            sval = str(v)
            if path in self._secret_paths:
                if sval != SECRET_MASK:
                    self._secrets[path] = sval
                return SECRET_MASK
            return os.path.expanduser(sval) if sval.startswith("~") else sval

        return convert(data, ())

    @classmethod
    def _collect_secret_paths_from_model(
        cls, model_cls: type[BaseModel], prefix: Tuple[str, ...] = ()
    ) -> set[Tuple[str, ...]]:
        paths: set[Tuple[str, ...]] = set()
        for name, field in getattr(model_cls, "model_fields", {}).items():
            ann = field.annotation
            if cls._is_secret_annotation(ann):
                paths.add(prefix + (name,))
                continue
            nested_cls = cls._extract_model_class(ann)
            if nested_cls is not None:
                paths |= cls._collect_secret_paths_from_model(nested_cls, prefix + (name,))
        return paths

    @staticmethod
    def _is_secret_annotation(ann: Any) -> bool:
        if ann is SecretStr:
            return True
        if get_origin(ann) is Union:
            return any(a is SecretStr for a in get_args(ann))
        return False

    @staticmethod
    def _extract_model_class(ann: Any) -> Optional[type]:
        candidates = get_args(ann) if get_origin(ann) is Union else (ann,)
        for a in candidates:
            if isinstance(a, type) and issubclass(a, BaseModel):
                return a
        return None
