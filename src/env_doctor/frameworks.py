"""Framework detection and conventions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import CLIENT_PREFIXES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameworkInfo:
    name: str
    display_name: str
    client_prefixes: tuple[str, ...]
    server_only: bool
    config_files: tuple[str, ...] = ()


FRAMEWORK_INFO: dict[str, FrameworkInfo] = {
    "nextjs": FrameworkInfo(
        "nextjs",
        "Next.js",
        CLIENT_PREFIXES["nextjs"],
        False,
        ("next.config.js", "next.config.mjs", "next.config.ts"),
    ),
    "vite": FrameworkInfo(
        "vite",
        "Vite",
        CLIENT_PREFIXES["vite"],
        False,
        ("vite.config.js", "vite.config.ts", "vite.config.mjs"),
    ),
    "cra": FrameworkInfo("cra", "Create React App", CLIENT_PREFIXES["cra"], False),
    "node": FrameworkInfo("node", "Node.js", CLIENT_PREFIXES["node"], True),
}

# package.json dependency that identifies each framework, in priority order
_DEPENDENCY_MARKERS = (("next", "nextjs"), ("vite", "vite"), ("react-scripts", "cra"))


def detect_framework(root: str | Path) -> str:
    """Guess the framework of a project.

    Looks for framework config files first, then ``package.json``
    dependencies, and falls back to ``node``.
    """
    root = Path(root)

    for framework, info in FRAMEWORK_INFO.items():
        for config_file in info.config_files:
            if (root / config_file).is_file():
                logger.debug(f"Detected {info.display_name} via {config_file}")
                return framework

    package_json = root / "package.json"
    if package_json.is_file():
        try:
            data = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read {package_json}: {e}")
            data = {}

        if isinstance(data, dict):
            dependencies = {}
            for key in ("dependencies", "devDependencies"):
                section = data.get(key)
                if isinstance(section, dict):
                    dependencies.update(section)
            for dependency, framework in _DEPENDENCY_MARKERS:
                if dependency in dependencies:
                    display_name = FRAMEWORK_INFO[framework].display_name
                    logger.debug(f"Detected {display_name} via package.json")
                    return framework

    logger.debug("No specific framework detected, defaulting to Node.js")
    return "node"


def get_framework_info(framework: str) -> FrameworkInfo:
    return FRAMEWORK_INFO.get(framework, FRAMEWORK_INFO["node"])


def is_client_accessible(name: str, framework: str) -> bool:
    """Whether the framework exposes ``name`` to browser bundles."""
    info = get_framework_info(framework)
    if info.server_only:
        return False
    return any(name.startswith(prefix) for prefix in info.client_prefixes)
