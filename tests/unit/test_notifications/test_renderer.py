"""Unit tests for the notification template renderer."""

from __future__ import annotations

import pytest

from notify_service.features.notifications.models import NotificationTemplate
from notify_service.features.notifications.templates import (
    TemplateRenderer,
    TemplateRenderError,
    get_template_renderer,
)


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestRender:
    def test_substitutes_top_level_values(self, renderer: TemplateRenderer) -> None:
        result = renderer.render(
            "Hi {{ userName }}, order {{ orderId }} totals ${{ totalAmount }}.",
            {"userName": "Ana", "orderId": "42", "totalAmount": 10.5},
        )

        assert result == "Hi Ana, order 42 totals $10.5."

    def test_resolves_dotted_paths(self, renderer: TemplateRenderer) -> None:
        result = renderer.render("Ship to {{ customer.address.city }}", {"customer": {"address": {"city": "Lisbon"}}})

        assert result == "Ship to Lisbon"

    def test_missing_path_renders_empty(self, renderer: TemplateRenderer) -> None:
        assert renderer.render("Hi {{ userName }}!", {}) == "Hi !"
        assert renderer.render("[{{ customer.name }}]", {"customer": {}}) == "[]"
        assert renderer.render("[{{ a.b.c }}]", {}) == "[]"

    def test_keys_named_like_dict_methods_resolve_to_values(self, renderer: TemplateRenderer) -> None:
        result = renderer.render(
            "Items: {{ order.items }} / {{ order.keys }} / {{ order.values }} / {{ order.get }}",
            {"order": {"items": "3 books", "keys": "k", "values": "v", "get": "g"}},
        )

        assert result == "Items: 3 books / k / v / g"

    def test_missing_key_named_like_dict_method_renders_empty(self, renderer: TemplateRenderer) -> None:
        assert renderer.render("[{{ order.items }}]", {"order": {"total": 3}}) == "[]"

    def test_null_value_renders_empty(self, renderer: TemplateRenderer) -> None:
        assert renderer.render("Code: {{ code }}", {"code": None}) == "Code: "

    def test_text_without_placeholders_is_unchanged(self, renderer: TemplateRenderer) -> None:
        assert renderer.render("Password Reset Request", {"userId": "u1"}) == "Password Reset Request"

    def test_rendering_is_deterministic(self, renderer: TemplateRenderer) -> None:
        data = {"orderId": "A-1"}
        first = renderer.render("Order {{ orderId }}", data)
        second = renderer.render("Order {{ orderId }}", data)

        assert first == second == "Order A-1"

    def test_does_not_escape_html(self, renderer: TemplateRenderer) -> None:
        assert renderer.render("{{ link }}", {"link": "https://x.test/?a=1&b=2"}) == "https://x.test/?a=1&b=2"

    def test_invalid_syntax_raises(self, renderer: TemplateRenderer) -> None:
        with pytest.raises(TemplateRenderError):
            renderer.render("Hello {{ userName ", {"userName": "Ana"})


class TestRenderNotification:
    def test_renders_subject_and_body(self, renderer: TemplateRenderer) -> None:
        template = NotificationTemplate(
            event_type="order.created",
            channel="email",
            subject_template="Your Order {{ orderId }} is Confirmed!",
            body_template="Hi {{ userName }}",
        )

        subject, body = renderer.render_notification(template, {"orderId": "42", "userName": "Ana"})

        assert subject == "Your Order 42 is Confirmed!"
        assert body == "Hi Ana"

    def test_subject_is_none_without_subject_template(self, renderer: TemplateRenderer) -> None:
        template = NotificationTemplate(
            event_type="invoice.paid",
            channel="sms",
            subject_template=None,
            body_template="Invoice {{ invoiceId }} paid",
        )

        subject, body = renderer.render_notification(template, {"invoiceId": "INV-7"})

        assert subject is None
        assert body == "Invoice INV-7 paid"

    def test_error_carries_template_name(self, renderer: TemplateRenderer) -> None:
        template = NotificationTemplate(
            event_type="order.created",
            channel="in_app",
            body_template="{% if %}",
        )

        with pytest.raises(TemplateRenderError) as exc_info:
            renderer.render_notification(template, {})

        assert exc_info.value.template_name == "order.created/in_app"


def test_get_template_renderer_singleton() -> None:
    assert get_template_renderer() is get_template_renderer()
