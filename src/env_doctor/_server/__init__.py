"""Mixins for the env-doctor language server."""

from __future__ import annotations

from .code_actions import CodeActionMixin
from .completion import CompletionMixin
from .hover import HoverMixin
from .validation import ValidationMixin

__all__ = ["CodeActionMixin", "CompletionMixin", "HoverMixin", "ValidationMixin"]
