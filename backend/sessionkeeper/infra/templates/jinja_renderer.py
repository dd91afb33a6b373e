from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from flask import Flask, render_template

from sessionkeeper.services._shared.ports import TemplateRenderer


@dataclass(slots=True)
class JinjaTemplateRenderer(TemplateRenderer):
    """
    Render templates from ``sessionkeeper/templates`` through Flask's Jinja2
    environment.

    :param app: Application owning the template loader.
    :param prefix: Folder prepended to every template name.
    """

    app: Flask
    prefix: str = "email/"

    def render(self, template_name: str, variables: Mapping[str, Any]) -> str:
        with self.app.app_context():
            return render_template(f"{self.prefix}{template_name}", **dict(variables))
