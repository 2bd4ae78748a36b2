"""
Runtime settings for the reorder-risk pipeline.

Values come from environment variables so the service and the training CLI
can be pointed at a different catalog without code changes. Command-line
flags override them in the entry points.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

DEFAULT_CATALOG_URL = 'http://localhost:8082/api/products'


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    return int(raw)


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    return float(raw)


@dataclass(frozen=True)
class PipelineSettings:
    """Settings shared by the orchestrator, the service and the CLI."""
    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_per_page: int = 200
    # None means no timeout: a hanging catalog is the collaborator's failure mode
    catalog_timeout: Optional[float] = None

    # Synthetic fallback catalog
    mock_min_size: int = 30
    mock_max_size: int = 50

    random_seed: Optional[int] = None
    log_level: str = 'INFO'

    def __post_init__(self):
        if self.mock_min_size < 1 or self.mock_max_size < self.mock_min_size:
            raise ValueError(
                f"Invalid synthetic catalog range: {self.mock_min_size}-{self.mock_max_size}"
            )

    @classmethod
    def from_env(cls) -> 'PipelineSettings':
        """Build settings from REORDER_* environment variables."""
        return cls(
            catalog_url=os.environ.get('REORDER_CATALOG_URL', DEFAULT_CATALOG_URL),
            catalog_per_page=_env_int('REORDER_CATALOG_PER_PAGE', 200),
            catalog_timeout=_env_float('REORDER_CATALOG_TIMEOUT', None),
            mock_min_size=_env_int('REORDER_MOCK_MIN_SIZE', 30),
            mock_max_size=_env_int('REORDER_MOCK_MAX_SIZE', 50),
            random_seed=_env_int('REORDER_RANDOM_SEED', None),
            log_level=os.environ.get('REORDER_LOG_LEVEL', 'INFO').upper(),
        )

    def override(self, **changes: Any) -> 'PipelineSettings':
        """Return a copy with the non-None values in ``changes`` applied."""
        applied: Dict[str, Any] = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **applied)
