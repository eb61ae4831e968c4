"""Jinja2 template rendering for notification subjects and bodies.

Templates use mustache-style ``{{ path }}`` interpolation with dotted-path
lookup into the event payload (``{{ customer.name }}``). Missing paths and
``null`` values render as an empty string instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from jinja2 import Template

    from notify_service.features.notifications.models import NotificationTemplate


class TemplateRenderError(Exception):
    """Raised when a template cannot be compiled or rendered."""

    def __init__(self, message: str, template_name: str | None = None) -> None:
        super().__init__(message)
        self.template_name = template_name


def _finalize(value: Any) -> Any:
    return "" if value is None else value


class PayloadEnvironment(SandboxedEnvironment):
    """Sandbox where ``a.b`` on a mapping is always a key lookup.

    Jinja tries attributes before items, so ``{{ order.items }}`` would
    otherwise print the bound ``dict.items`` method. A missing key on a
    mapping is undefined rather than falling through to its methods.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            try:
                return obj[attribute]
            except KeyError:
                return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)


class TemplateRenderer:
    """Sandboxed, side-effect free renderer.

    Rendering the same template with the same data always yields the same
    string. Compiled templates are cached by source text.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._env = PayloadEnvironment(
            autoescape=False,
            undefined=ChainableUndefined,
            finalize=_finalize,
            keep_trailing_newline=True,
        )
        self._compiled: dict[str, Template] = {}

    def render(self, template: str, data: Mapping[str, Any]) -> str:
        """Interpolate ``data`` into ``template``.

        Args:
            template: Template source
            data: Values available to the template (the event payload)

        Returns:
            Rendered string; unknown placeholders become empty strings

        Raises:
            TemplateRenderError: If the template source is not valid syntax
        """
        try:
            return self._compile(template).render(dict(data))
        except TemplateError as exc:
            msg = f"Failed to render template: {exc}"
            raise TemplateRenderError(msg) from exc

    def render_notification(
        self,
        template: NotificationTemplate,
        data: Mapping[str, Any],
    ) -> tuple[str | None, str]:
        """Render a stored template's subject (when it has one) and body.

        Returns:
            (subject or None, body)
        """
        name = f"{template.event_type}/{template.channel}"
        try:
            subject = (
                self.render(template.subject_template, data)
                if template.subject_template
                else None
            )
            body = self.render(template.body_template, data)
        except TemplateRenderError as exc:
            exc.template_name = name
            raise

        self._logger.debug(lambda: f"Rendered template {name}: subject={subject!r}")
        return subject, body

    def _compile(self, source: str) -> Template:
        compiled = self._compiled.get(source)
        if compiled is None:
            compiled = self._env.from_string(source)
            self._compiled[source] = compiled
        return compiled


# Singleton instance
_renderer: TemplateRenderer | None = None


def get_template_renderer() -> TemplateRenderer:
    """Get the shared template renderer."""
    global _renderer
    if _renderer is None:
        _renderer = TemplateRenderer()
    return _renderer


def render(template: str, data: Mapping[str, Any]) -> str:
    """Render ``template`` against ``data`` with the shared renderer."""
    return get_template_renderer().render(template, data)
