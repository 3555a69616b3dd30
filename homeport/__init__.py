"""Homeport: discover cloud infrastructure and map it to self-hosted services."""

from pathlib import Path

import tomllib


# Read version from pyproject.toml
def _get_version() -> str:
    """Get version from pyproject.toml."""
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    try:
        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)
        version = data.get("tool", {}).get("poetry", {}).get("version")
        return str(version) if version else "unknown"
    except OSError:
        return "unknown"


__version__ = _get_version()

from homeport.domain import (  # noqa: E402
    Category,
    Infrastructure,
    Provider,
    Resource,
    ResourceType,
)
from homeport.mappers import (  # noqa: E402
    MapperRegistry,
    MappingResult,
    create_default_mapper_registry,
)
from homeport.parsers import (  # noqa: E402
    ParseOptions,
    ParserRegistry,
    create_default_registry,
)

__all__ = [
    "Category",
    "Infrastructure",
    "MapperRegistry",
    "MappingResult",
    "ParseOptions",
    "ParserRegistry",
    "Provider",
    "Resource",
    "ResourceType",
    "__version__",
    "create_default_mapper_registry",
    "create_default_registry",
]
