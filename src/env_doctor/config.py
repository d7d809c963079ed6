"""
Configuration objects and loading.

Configuration is declared with ``param.Parameterized`` classes so that every
field is type checked on assignment. Loading is best effort: a field that
fails validation is reported as a warning and keeps its default.
"""

from __future__ import annotations

import functools
import json
import logging
import re
import tomllib
from pathlib import Path
from typing import Any

import param

from .constants import (
    CONFIG_FILENAMES,
    CONSISTENCY_MODES,
    DEFAULT_DECLARATION_FILES,
    DEFAULT_EXCLUDE,
    DEFAULT_INCLUDE,
    FRAMEWORKS,
    VARIABLE_TYPES,
)

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class _ConfigBase(param.Parameterized):
    """Shared loading behavior for configuration sections."""

    # Alternate spellings accepted when loading, mapped to parameter names
    _aliases: dict[str, str] = {}

    @classmethod
    def from_dict(cls, data: Any, context: str, problems: list[str]):
        """Build an instance, recording every rejected field in ``problems``."""
        obj = cls()
        if not isinstance(data, dict):
            problems.append(f"{context}: expected an object, got {type(data).__name__}")
            return obj

        for raw_key, value in data.items():
            key = cls._normalize_key(raw_key)
            if key == "name" or key not in cls.param:
                problems.append(f"{context}.{raw_key}: unknown option")
                continue
            try:
                setattr(obj, key, obj._coerce(key, value, f"{context}.{raw_key}", problems))
            except (ValueError, TypeError) as e:
                problems.append(f"{context}.{raw_key}: {e}")

        return obj

    @classmethod
    def _normalize_key(cls, key: str) -> str:
        snake = _CAMEL_BOUNDARY.sub("_", key).replace("-", "_").lower()
        return cls._aliases.get(snake, snake)

    def _coerce(self, key: str, value: Any, context: str, problems: list[str]) -> Any:
        return value

    def to_dict(self) -> dict[str, Any]:
        data = {}
        for key, value in self.param.values().items():
            if key == "name" or value is None:
                continue
            if isinstance(value, _ConfigBase):
                value = value.to_dict()
            elif isinstance(value, dict):
                value = {
                    k: v.to_dict() if isinstance(v, _ConfigBase) else v for k, v in value.items()
                }
            data[key] = value
        return data


def _string_list(value: Any) -> Any:
    # Scalars in JSON enum/must_be positions are compared as their string form
    if isinstance(value, list):
        return [_scalar_to_str(v) for v in value]
    return value


def _scalar_to_str(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class _RuleFields(_ConfigBase):
    type = param.Selector(
        default=None, objects=[None, *VARIABLE_TYPES], doc="Expected value type"
    )

    pattern = param.String(
        default=None, allow_None=True, doc="Regular expression the value must match"
    )

    enum = param.List(default=None, allow_None=True, item_type=str, doc="Allowed values")

    def _coerce(self, key, value, context, problems):
        if key == "enum":
            return _string_list(value)
        if key == "pattern" and value is not None:
            if not isinstance(value, str):
                raise ValueError(f"pattern must be a string, got {type(value).__name__}")
            try:
                compile_pattern(value)
            except re.error as e:
                raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return value

    def compiled_pattern(self) -> re.Pattern[str] | None:
        return compile_pattern(self.pattern) if self.pattern else None


class EnvironmentOverride(_RuleFields):
    """Per-environment adjustments to a variable rule."""

    required = param.Boolean(
        default=None, allow_None=True, doc="Overrides the base rule when set"
    )

    must_be = param.String(
        default=None, allow_None=True, doc="Exact value enforced in this environment"
    )

    message = param.String(default=None, allow_None=True, doc="Message used when must_be fails")

    def _coerce(self, key, value, context, problems):
        if key == "must_be":
            return _scalar_to_str(value)
        return super()._coerce(key, value, context, problems)


class VariableRule(_RuleFields):
    """Declared expectations for one environment variable."""

    required = param.Boolean(default=False)

    secret = param.Boolean(default=False)

    default = param.Parameter(default=None, doc="Value assumed when the variable is absent")

    description = param.String(default=None, allow_None=True)

    docs_url = param.String(default=None, allow_None=True)

    environments = param.Dict(default={}, doc="Environment name to EnvironmentOverride")

    def _coerce(self, key, value, context, problems):
        if key == "environments" and isinstance(value, dict):
            return {
                env: EnvironmentOverride.from_dict(override, f"{context}.{env}", problems)
                for env, override in value.items()
            }
        return super()._coerce(key, value, context, problems)

    def override_for(self, environment: str) -> EnvironmentOverride | None:
        return self.environments.get(environment)


class EnvironmentConfig(_ConfigBase):
    """Declaration files that make up one named environment."""

    _aliases = {"env_files": "files"}

    files = param.List(default=[], item_type=str)

    description = param.String(default=None, allow_None=True)

    strict = param.Boolean(default=False)


class MatrixConfig(_ConfigBase):
    """Cross-environment comparison settings."""

    require_consistency = param.Selector(default="warn", objects=list(CONSISTENCY_MODES))

    exclude_from_matrix = param.List(default=[], item_type=str, doc="Variable name globs")


class EnvDoctorConfig(_ConfigBase):
    """Top-level configuration."""

    _aliases = {"env_files": "declaration_files"}

    root = param.String(default=".")

    declaration_files = param.List(default=list(DEFAULT_DECLARATION_FILES), item_type=str)

    template_file = param.String(default=None, allow_None=True)

    include = param.List(default=list(DEFAULT_INCLUDE), item_type=str)

    exclude = param.List(default=list(DEFAULT_EXCLUDE), item_type=str)

    framework = param.Selector(default="auto", objects=list(FRAMEWORKS))

    variables = param.Dict(default={}, doc="Variable name to VariableRule")

    ignore = param.List(
        default=[], item_type=str, doc="NAME_GLOB or analyzer:NAME_GLOB entries"
    )

    strict = param.Boolean(default=False, doc="Treat warnings as errors")

    secret_patterns = param.List(default=[], item_type=str, doc="Extra secret regexes")

    environments = param.Dict(default={}, doc="Environment name to EnvironmentConfig")

    matrix = param.ClassSelector(class_=MatrixConfig, default=None, allow_None=True)

    def __init__(self, **params):
        super().__init__(**params)
        if self.matrix is None:
            self.matrix = MatrixConfig()

    def _coerce(self, key, value, context, problems):
        if key == "variables" and isinstance(value, dict):
            return {
                name: VariableRule.from_dict(rule, f"{context}.{name}", problems)
                for name, rule in value.items()
            }
        if key == "environments" and isinstance(value, dict):
            return {
                env: EnvironmentConfig.from_dict(entry, f"{context}.{env}", problems)
                for env, entry in value.items()
            }
        if key == "matrix":
            return MatrixConfig.from_dict(value, context, problems)
        if key == "secret_patterns" and isinstance(value, list):
            kept = []
            for i, pattern in enumerate(value):
                if isinstance(pattern, str):
                    try:
                        compile_pattern(pattern)
                    except re.error as e:
                        problems.append(
                            f"{context}[{i}]: invalid regular expression {pattern!r}: {e}"
                        )
                        continue
                kept.append(pattern)
            return kept
        return value

    def get_rule(self, name: str) -> VariableRule | None:
        return self.variables.get(name)

    def compiled_secret_patterns(self) -> tuple[re.Pattern[str], ...]:
        compiled = []
        for pattern in self.secret_patterns:
            try:
                compiled.append(compile_pattern(pattern))
            except re.error as e:
                logger.warning(f"Ignoring invalid secret pattern {pattern!r}: {e}")
        return tuple(compiled)

    def clone(self, **overrides) -> EnvDoctorConfig:
        values = {k: v for k, v in self.param.values().items() if k != "name"}
        values.update(overrides)
        return type(self)(**values)


@functools.lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a configured regex.

    Accepts plain patterns and the ``/body/flags`` literal form, where the
    ``i`` flag means case-insensitive.
    """
    literal = re.fullmatch(r"/(.*)/([a-z]*)", pattern, re.DOTALL)
    if literal is None:
        return re.compile(pattern)

    body, flags = literal.groups()
    re_flags = 0
    if "i" in flags:
        re_flags |= re.IGNORECASE
    if "m" in flags:
        re_flags |= re.MULTILINE
    if "s" in flags:
        re_flags |= re.DOTALL
    return re.compile(body, re_flags)


def config_from_dict(data: dict[str, Any], root: str | Path = ".") -> EnvDoctorConfig:
    """Build a configuration, logging a warning for every rejected field."""
    problems: list[str] = []
    config = EnvDoctorConfig.from_dict(data, "config", problems)

    root_path = Path(root)
    config.root = str(root_path / config.root) if config.root != "." else str(root_path)

    if problems:
        logger.warning("Config validation warnings:")
        for problem in problems:
            logger.warning(f"  {problem}")

    return config


def load_config(
    config_path: str | Path | None = None, root: str | Path = "."
) -> tuple[EnvDoctorConfig, Path | None]:
    """Locate and load configuration for a project.

    Search order: the explicit ``config_path``; ``env-doctor.json``,
    ``.env-doctorrc`` and ``.env-doctorrc.json`` in ``root`` or any parent;
    ``[tool.env-doctor]`` in ``root/pyproject.toml``; the ``"env-doctor"``
    key of ``root/package.json``. Falls back to defaults.

    Returns:
        The configuration and the file it came from, if any
    """
    root_path = Path(root).resolve()

    if config_path is not None:
        path = root_path / config_path
        if path.is_file():
            return config_from_dict(_read_config_file(path), root_path), path
        logger.warning(f"Config file not found: {config_path}")
        return config_from_dict({}, root_path), None

    for filename in CONFIG_FILENAMES:
        found = _find_up(filename, root_path)
        if found is not None:
            logger.debug(f"Found config at {found}")
            return config_from_dict(_read_config_file(found), found.parent), found

    pyproject = root_path / "pyproject.toml"
    if pyproject.is_file():
        try:
            tool_config = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Failed to read {pyproject}: {e}")
        else:
            section = tool_config.get("tool", {}).get("env-doctor")
            if isinstance(section, dict):
                logger.debug("Found config in pyproject.toml")
                return config_from_dict(section, root_path), pyproject

    package_json = root_path / "package.json"
    if package_json.is_file():
        data = _read_json(package_json)
        if isinstance(data, dict) and isinstance(data.get("env-doctor"), dict):
            logger.debug("Found config in package.json")
            return config_from_dict(data["env-doctor"], root_path), package_json

    logger.debug("No config found, using defaults")
    return config_from_dict({}, root_path), None


def _find_up(filename: str, start: Path) -> Path | None:
    for directory in (start, *start.parents):
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    data = _read_json(path)
    if not isinstance(data, dict):
        logger.warning(f"Config file {path} must contain a JSON object")
        return {}
    return data


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return None


def validate_config(config: EnvDoctorConfig) -> list[str]:
    """Re-check a built configuration; returns human readable problems."""
    errors: list[str] = []

    if not config.declaration_files:
        errors.append("At least one declaration file must be specified")

    if not config.include:
        errors.append("At least one include pattern must be specified")

    for name, rule in config.variables.items():
        if not isinstance(rule, VariableRule):
            errors.append(f'Variable "{name}": rule must be an object')
            continue
        errors.extend(f'Variable "{name}": {e}' for e in _rule_errors(rule))
        for env, override in rule.environments.items():
            errors.extend(f'Variable "{name}" in {env}: {e}' for e in _rule_errors(override))

    for pattern in config.secret_patterns:
        try:
            compile_pattern(pattern)
        except re.error as e:
            errors.append(f"Secret pattern {pattern!r} is not a valid regular expression: {e}")

    return errors


def _rule_errors(rule: _RuleFields) -> list[str]:
    errors = []
    if rule.type is not None and rule.type not in VARIABLE_TYPES:
        errors.append(f'invalid type "{rule.type}"')
    if rule.pattern:
        try:
            compile_pattern(rule.pattern)
        except re.error as e:
            errors.append(f"pattern is not a valid regular expression: {e}")
    if rule.enum is not None and not rule.enum:
        errors.append("enum must not be empty")
    return errors


_ENVIRONMENT_FILES = {
    "development": [".env", ".env.local", ".env.development", ".env.development.local"],
    "production": [".env", ".env.production", ".env.production.local"],
    "test": [".env", ".env.test", ".env.test.local"],
    "staging": [".env", ".env.staging", ".env.staging.local"],
}


def get_env_specific_config(config: EnvDoctorConfig, env: str) -> EnvDoctorConfig:
    """Copy of ``config`` reading the layered declaration files of one environment."""
    if env in config.environments:
        files = list(config.environments[env].files)
    else:
        files = list(_ENVIRONMENT_FILES.get(env, [f".env.{env}"]))
    return config.clone(declaration_files=files)


def generate_config_template() -> str:
    """Starter ``env-doctor.json`` contents."""
    template = {
        "envFiles": [".env", ".env.local"],
        "templateFile": ".env.example",
        "include": list(DEFAULT_INCLUDE),
        "exclude": ["node_modules", "dist", "**/*.test.*"],
        "framework": "auto",
        "variables": {
            "DATABASE_URL": {"required": True, "secret": True, "pattern": "^postgres://"},
            "PORT": {"type": "number", "default": 3000},
            "NODE_ENV": {"enum": ["development", "production", "test"]},
        },
        "ignore": [],
        "strict": False,
        "matrix": {"requireConsistency": "warn", "excludeFromMatrix": []},
    }
    return json.dumps(template, indent=2) + "\n"
