"""Loading deployspec documents from disk."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml

from ..errors import SpecLoadError
from ..utils.logging import get_logger
from .models import DeploySpec

logger = get_logger(__name__)

_NUMERIC_TAGS = {"tag:yaml.org,2002:int", "tag:yaml.org,2002:float"}


class _DeploySpecLoader(yaml.SafeLoader):
    """SafeLoader that leaves numeric scalars as text.

    ``mode: 644`` must keep its octal digits, so numbers are resolved by the
    data model instead of by YAML.
    """


_DeploySpecLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag not in _NUMERIC_TAGS]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def parse_deployspec(text: str, *, source: str = "<string>") -> DeploySpec:
    try:
        payload = yaml.load(text, Loader=_DeploySpecLoader)
    except yaml.YAMLError as exc:
        raise SpecLoadError(f"Failed to parse deployspec {source}: {exc}") from exc
    try:
        return DeploySpec.from_dict(payload)
    except SpecLoadError as exc:
        raise SpecLoadError(f"Invalid deployspec {source}: {exc}") from exc


def load_deployspec(path: Union[str, Path]) -> Optional[DeploySpec]:
    """Load the deployspec at ``path``.

    Returns ``None`` when the file does not exist so callers can fall back
    to a plain file-transfer run. Unreadable or malformed files raise
    :class:`SpecLoadError`.
    """
    spec_path = Path(path)
    if not spec_path.is_file():
        logger.warning("deployspec file not found at %s, skipping hooks", spec_path.resolve())
        return None
    try:
        text = spec_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecLoadError(f"Cannot read deployspec {spec_path}: {exc}") from exc
    spec = parse_deployspec(text, source=str(spec_path))
    logger.info("Loaded deployspec %s (version %s)", spec_path, spec.version)
    return spec
