"""
Manual overrides for discovery stages.

An override source is any callable taking (rank, stage_name) and returning
an ordered list of segment ids, or None when the stage should run normally.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import yaml

from calmmap.errors import OverrideError

logger = logging.getLogger(__name__)

STAGE_NAMES = ("start", "end", "route")

OverrideSource = Callable[[int, str], Optional[List[int]]]


def no_overrides(rank: int, stage: str) -> Optional[List[int]]:
    return None


def _parse_ids(values: List[Union[str, int]], origin: str) -> List[int]:
    ids = []
    for value in values:
        try:
            ids.append(int(str(value).strip()))
        except ValueError:
            raise OverrideError(f"{origin}: invalid segment id {value!r}") from None
    return ids


class DirectoryOverrideSource:
    """Reads overrides from files named `<rank>.<stage>`, one id per line."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def __call__(self, rank: int, stage: str) -> Optional[List[int]]:
        path = self.directory / f"{rank}.{stage}"
        if not path.exists():
            return None

        lines = [line for line in path.read_text().splitlines() if line.strip()]
        ids = _parse_ids(lines, str(path))
        logger.debug(f"Override {path}: {ids}")
        return ids


class MappingOverrideSource:
    """Overrides held in a mapping of rank -> stage -> ids.

    Typically loaded from YAML:

        12:
          start: [1001]
          route: [1001, 1002, 1003]
    """

    def __init__(self, overrides: Dict[int, Dict[str, List[Union[str, int]]]]):
        parsed = {}
        for rank, stages in overrides.items():
            if not isinstance(stages, dict):
                raise OverrideError(f"override for rank {rank} must map stage names to id lists")
            unknown = set(stages) - set(STAGE_NAMES)
            if unknown:
                raise OverrideError(f"override for rank {rank} has unknown stages: {sorted(unknown)}")
            for stage, values in stages.items():
                if not isinstance(values, list):
                    raise OverrideError(f"override {rank}.{stage} must be a list of segment ids")
            try:
                parsed[int(rank)] = stages
            except ValueError:
                raise OverrideError(f"invalid override rank {rank!r}") from None
        self.overrides = parsed

    @classmethod
    def from_yaml(cls, path: Path) -> "MappingOverrideSource":
        """Load overrides from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            OverrideError: If the content is not a rank mapping
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Override file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise OverrideError(f"{path}: expected a mapping of rank to stages")
        return cls(data)

    def __call__(self, rank: int, stage: str) -> Optional[List[int]]:
        values = self.overrides.get(rank, {}).get(stage)
        if values is None:
            return None
        return _parse_ids(list(values), f"override {rank}.{stage}")


class ChainedOverrideSource:
    """Tries several sources in order; the first non-None answer wins."""

    def __init__(self, sources: List[OverrideSource]):
        self.sources = sources

    def __call__(self, rank: int, stage: str) -> Optional[List[int]]:
        for source in self.sources:
            ids = source(rank, stage)
            if ids is not None:
                return ids
        return None
