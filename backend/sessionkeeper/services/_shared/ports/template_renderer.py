from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class TemplateRenderer(Protocol):
    """Port for turning a named template plus variables into HTML."""

    def render(self, template_name: str, variables: Mapping[str, Any]) -> str: ...
