from __future__ import annotations

import textwrap

import pytest

from env_doctor.config import config_from_dict
from env_doctor.models import DeclaredVariable, Usage


@pytest.fixture
def project(tmp_path):
    """Write a file tree under a temporary root and return the root."""

    def build(files: dict[str, str]):
        for relative_path, content in files.items():
            path = tmp_path / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        return tmp_path

    return build


@pytest.fixture
def config():
    """Default configuration."""
    return config_from_dict({})


@pytest.fixture
def make_config():
    def build(**data):
        return config_from_dict(data)

    return build


@pytest.fixture
def var():
    """Factory for declared variables."""

    def build(name: str, value: str = "", line: int = 1, file: str = ".env", **kwargs):
        return DeclaredVariable(name=name, value=value, line=line, file=file, **kwargs)

    return build


@pytest.fixture
def usage():
    """Factory for usages."""

    def build(name: str, file: str = "src/index.ts", line: int = 1, **kwargs):
        kwargs.setdefault("column", 0)
        kwargs.setdefault("access_pattern", "direct")
        return Usage(name=name, file=file, line=line, **kwargs)

    return build
