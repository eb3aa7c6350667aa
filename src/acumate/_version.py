"""Version lookup for the acumate-lint distribution."""

import tomllib
from importlib import metadata
from pathlib import Path

DISTRIBUTION = "acumate-lint"
PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _pyproject_version(path: Path) -> str | None:
    try:
        with path.open("rb") as f:
            project = tomllib.load(f).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    value = project.get("version")
    return value if isinstance(value, str) else None


def get_version(pyproject: Path = PYPROJECT) -> str:
    """
    Installed distribution version.

    A source checkout that was never installed reads ``[project].version``
    from its pyproject.toml instead; "0.0.0" when neither is available.
    """
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return _pyproject_version(pyproject) or "0.0.0"
