"""
Branch specifications: which releases each generated branch covers.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from ..core.enums import BranchType
from ..core.exceptions import ConfigurationError
from ..core.models import BranchSpec


logger = logging.getLogger(__name__)


@dataclass
class BranchConfig:
    """Named branch specifications"""
    branches: Dict[str, BranchSpec] = field(default_factory=dict)

    @classmethod
    def default(cls) -> 'BranchConfig':
        return cls(branches={
            'release': BranchSpec(type=BranchType.RELEASE),
            'dev': BranchSpec(type=BranchType.ALL),
        })

    @classmethod
    def from_dict(cls, data: Dict) -> 'BranchConfig':
        branches = {}
        for name, spec in (data.get('branches') or {}).items():
            try:
                branches[name] = BranchSpec.from_dict(spec or {})
            except (ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid spec for branch '{name}': {e}") from e
        return cls(branches=branches)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'BranchConfig':
        path = Path(yaml_path)
        if not path.exists():
            raise ConfigurationError(f"Branch config not found: {path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    def resolve(self, branch: str, cli_spec: Optional[BranchSpec]) -> BranchSpec:
        """
        Pick the spec for ``branch``.

        A spec built from command-line bounds wins; otherwise the configured
        spec for the branch, falling back to all releases.
        """
        if cli_spec is not None:
            return cli_spec

        spec = self.branches.get(branch)
        if spec is None:
            logger.info(f"No branch config for '{branch}', considering all versions")
            return BranchSpec(type=BranchType.ALL)
        return spec
