import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

MANIFEST_FILENAME = "acumate.toml"
PASSWORD_ENV_VAR = "ACUMATE_PASSWORD"


@dataclass
class BackendConfig:
    """Connection to the backend metadata service."""

    url: str = ""
    login: str = ""
    password: str = ""
    tenant: str = ""
    use_backend: bool = False
    use_cache: bool = True
    use_authentication: bool = True
    timeout: float = 30.0


@dataclass
class CacheConfig:
    """Persistent metadata cache location (relative to the project root)."""

    path: str = ".acumate/cache.json"


@dataclass
class ValidationConfig:
    """Workspace sweep settings."""

    screens_root: str = "src/screens"
    exclude: list[str] = field(default_factory=lambda: ["node_modules", ".git", "dist"])


@dataclass
class AcuMateManifest:
    """
    Parsed acumate.toml.

    ``root`` is the directory containing the manifest; relative paths in the
    manifest are resolved against it.
    """

    root: Path = field(default_factory=Path.cwd)
    backend: BackendConfig = field(default_factory=BackendConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    @property
    def cache_path(self) -> Path:
        return (self.root / self.cache.path).resolve()

    @property
    def screens_root(self) -> Path:
        return (self.root / self.validation.screens_root).resolve()


def _typed(section: dict, key: str, expected: type | tuple[type, ...], default):
    value = section.get(key, default)
    types = expected if isinstance(expected, tuple) else (expected,)
    # bool is an int subclass; only accept it where bool is asked for
    if not isinstance(value, types) or (isinstance(value, bool) and bool not in types):
        raise ConfigError(f"Invalid value for '{key}' in {MANIFEST_FILENAME}: {value!r}")
    return value


def load_manifest(path: Path) -> AcuMateManifest:
    """
    Load acumate.toml.

    A missing file yields the defaults, with the backend disabled.

    Raises:
        ConfigError: If the file is not valid TOML or a value has the wrong type
    """
    if not path.exists():
        return AcuMateManifest(root=path.parent.resolve())

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    backend_data = data.get("backend", {})
    cache_data = data.get("cache", {})
    validation_data = data.get("validation", {})

    backend_config = BackendConfig(
        url=_typed(backend_data, "url", str, ""),
        login=_typed(backend_data, "login", str, ""),
        password=_typed(backend_data, "password", str, "") or os.environ.get(PASSWORD_ENV_VAR, ""),
        tenant=_typed(backend_data, "tenant", str, ""),
        use_backend=_typed(backend_data, "use_backend", bool, bool(backend_data.get("url"))),
        use_cache=_typed(backend_data, "use_cache", bool, True),
        use_authentication=_typed(backend_data, "use_authentication", bool, True),
        timeout=float(_typed(backend_data, "timeout", (int, float), 30.0)),
    )

    cache_config = CacheConfig(
        path=_typed(cache_data, "path", str, ".acumate/cache.json"),
    )

    validation_config = ValidationConfig(
        screens_root=_typed(validation_data, "screens_root", str, "src/screens"),
        exclude=list(_typed(validation_data, "exclude", list, ["node_modules", ".git", "dist"])),
    )

    return AcuMateManifest(
        root=path.parent.resolve(),
        backend=backend_config,
        cache=cache_config,
        validation=validation_config,
    )
