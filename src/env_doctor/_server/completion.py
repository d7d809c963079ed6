"""Completion mixin for environment variable names."""

from __future__ import annotations

import re

from lsprotocol.types import CompletionItem, CompletionItemKind

from env_doctor._analyzer import mask_value

from .base import LSPServerBase

# Text before the cursor ending in an environment object member access
_re_env_access = re.compile(
    r"(?P<chain>process\.env|import\.meta\.env)"
    r"(?:\.(?P<member>\w*)|\[\s*(?P<quote>['\"])(?P<key>\w*))$"
)


def env_access_before(line: str, character: int) -> tuple[str, str] | None:
    """``(chain, typed_prefix)`` when the cursor follows ``process.env.`` or similar."""
    match = _re_env_access.search(line[:character])
    if match is None:
        return None
    prefix = match.group("member")
    if prefix is None:
        prefix = match.group("key")
    return match.group("chain"), prefix


class CompletionMixin(LSPServerBase):
    """Provides autocompletion functionality for the LSP server."""

    def _get_completions(self, line: str, character: int) -> list[CompletionItem]:
        access = env_access_before(line, character)
        if access is None:
            return []
        _, prefix = access

        declared = {v.name: v for v in self.declared}
        rules = self.config.variables if self.config is not None else {}
        names = sorted(set(declared) | set(rules))

        completions = []
        for name in names:
            if not name.startswith(prefix):
                continue
            rule = rules.get(name)
            variable = declared.get(name)

            detail = "env-doctor rule" if variable is None else f"{variable.file}:{variable.line}"
            documentation = rule.description if rule is not None and rule.description else None
            if variable is not None and variable.value:
                is_secret = variable.is_secret or (rule is not None and rule.secret)
                value = mask_value(variable.value, is_secret)
                documentation = f"{documentation}\n\n{value}" if documentation else value

            completions.append(
                CompletionItem(
                    label=name,
                    kind=CompletionItemKind.Variable,
                    detail=detail,
                    documentation=documentation,
                    sort_text=name,
                )
            )
        return completions
