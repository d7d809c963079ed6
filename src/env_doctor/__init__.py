"""
env-doctor: static analysis of environment variables.
Cross-checks the variables declared in .env files against the
variables read by JavaScript/TypeScript source code.
"""

from __future__ import annotations

from .__version import __version__
from .analyzer import EnvAnalyzer, quick_analyze
from .config import EnvDoctorConfig, load_config
from .matrix import analyze_matrix

__all__ = [
    "EnvAnalyzer",
    "EnvDoctorConfig",
    "__version__",
    "analyze_matrix",
    "load_config",
    "quick_analyze",
]
