"""Hover mixin for providing variable information."""

from __future__ import annotations

from typing import TYPE_CHECKING

from env_doctor._analyzer import mask_value

from .base import LSPServerBase

if TYPE_CHECKING:
    from collections.abc import Sequence

    from env_doctor.config import VariableRule
    from env_doctor.models import DeclaredVariable, Usage


class HoverMixin(LSPServerBase):
    """Provides hover information functionality for the LSP server."""

    def _get_hover_info(self, name: str) -> str | None:
        """Get hover information for a variable name."""
        declared = next((v for v in self.declared if v.name == name), None)
        rule = self.config.get_rule(name) if self.config is not None else None
        usages = [u for u in self.usages if u.name == name]

        if declared is None and rule is None and not usages:
            return None
        return build_hover_text(name, declared, rule, usages)


def build_hover_text(
    name: str,
    declared: DeclaredVariable | None,
    rule: VariableRule | None,
    usages: Sequence[Usage],
) -> str:
    """Markdown hover for one variable; secret values are masked."""
    hover_parts = [f"**{name}**", ""]

    if rule is not None and rule.description:
        hover_parts.extend([rule.description, ""])

    if declared is not None:
        is_secret = declared.is_secret or (rule is not None and rule.secret)
        value = mask_value(declared.value, is_secret) if declared.value else "(empty)"
        hover_parts.append(f"**Value**: `{value}`")
        hover_parts.append(f"**Declared in**: `{declared.file}:{declared.line}`")
    else:
        hover_parts.append("**Not declared** in any declaration file")

    if rule is not None:
        if rule.type:
            hover_parts.append(f"**Type**: `{rule.type}`")
        hover_parts.append(f"**Required**: {'yes' if rule.required else 'no'}")
        if rule.pattern:
            hover_parts.append(f"**Pattern**: `{rule.pattern}`")
        if rule.enum:
            hover_parts.append(f"**Allowed values**: {', '.join(rule.enum)}")
        if rule.docs_url:
            hover_parts.append(f"**Documentation**: [{rule.docs_url}]({rule.docs_url})")

    files = sorted({usage.file for usage in usages})
    noun = "time" if len(usages) == 1 else "times"
    hover_parts.append(f"**Used**: {len(usages)} {noun} in {len(files)} file(s)")
    if any(usage.is_client_side for usage in usages):
        hover_parts.append("Exposed to client-side code")

    return "\n".join(hover_parts)
