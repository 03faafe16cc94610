"""Version of the installed distribution and of the frame payload."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import tomllib


def _read_version() -> str:
    try:
        return version("ddsweb-datasource")
    except PackageNotFoundError:
        pass
    # Source checkout: pyproject.toml sits next to the package
    pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
    try:
        with open(pyproject_path, "rb") as f:
            return tomllib.load(f)["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "0.0.0-dev"


__version__ = _read_version()

# Bumped when the JSON shape of frames returned to hosts changes
__frame_model_version__ = "1.0.0"
