from rails_diff.cache import CacheKey, ReferenceAppCache
from rails_diff.config import DiffConfig, load_config
from rails_diff.diff import diff_files, diff_generated
from rails_diff.errors import CommandFailedError, ConfigError, RailsDiffError
from rails_diff.upstream import UpstreamRepository

__version__ = "0.1.0"

__all__ = [
    "CacheKey",
    "CommandFailedError",
    "ConfigError",
    "DiffConfig",
    "RailsDiffError",
    "ReferenceAppCache",
    "UpstreamRepository",
    "__version__",
    "diff_files",
    "diff_generated",
    "load_config",
]
