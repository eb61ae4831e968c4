"""Notification template rendering."""

from .renderer import TemplateRenderer, TemplateRenderError, get_template_renderer, render

__all__ = [
    "TemplateRenderError",
    "TemplateRenderer",
    "get_template_renderer",
    "render",
]
