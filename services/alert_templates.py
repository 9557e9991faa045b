# ============================================================================
# ALERT TEMPLATES
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Service - Alert text rendering with Jinja2
# PURPOSE: Render alert descriptions and email bodies
# CREATED: 17 OCT 2026
# ============================================================================
"""
Alert Templates

Jinja2 templates for every alert the gate sends. StrictUndefined makes a
missing variable an error at render time instead of an empty string in an
operator's inbox.

Usage:
    text = render_alert("critical", pipeline_id="2026-10-17", result=result)
"""

from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined, select_autoescape



TEMPLATES = {
    "critical": (
        "Pipeline {{ pipeline_id }} health check FAILED\n"
        "\n"
        "**Critical Services Down:**\n"
        "{% for check in failed_checks %}"
        "• {{ check.service.value }}: {{ check.error or 'Unknown error' }}\n"
        "{% endfor %}"
        "\n"
        "**Action Taken:** Pipeline skipped, buffer video deployment triggered\n"
        "\n"
        "**Health Check Duration:** {{ result.total_duration_ms }}ms\n"
        "**Timestamp:** {{ result.timestamp }}"
    ),
    "warning": (
        "Pipeline {{ pipeline_id }} health check passed with warnings\n"
        "\n"
        "**Degraded Services:**\n"
        "{% for check in warned_checks %}"
        "• {{ check.service.value }}: {{ check.error or 'Degraded performance' }}\n"
        "{% endfor %}"
        "\n"
        "**Action:** Pipeline proceeding with quality flag\n"
        "\n"
        "**Health Check Duration:** {{ result.total_duration_ms }}ms"
    ),
    "emergency": (
        "Pipeline {{ pipeline_id }} failed AND no buffer videos are available!\n"
        "\n"
        "**Immediate action required:**\n"
        "1. Investigate health check failures\n"
        "2. Create new buffer videos urgently\n"
        "3. Consider manual content upload\n"
        "\n"
        "**Channel will MISS daily upload without intervention.**"
        "{% if error %}\n\n**Deployment error:** {{ error }}{% endif %}"
    ),
    "email_html": (
        "<html><body>"
        "<h2 style=\"color: {{ color }};\">[{{ alert.severity.value }}] {{ alert.title }}</h2>"
        "<pre style=\"font-family: sans-serif; white-space: pre-wrap;\">{{ alert.description }}</pre>"
        "{% if alert.fields %}<table>"
        "{% for field in alert.fields %}"
        "<tr><th align=\"left\">{{ field.name }}</th><td>{{ field.value }}</td></tr>"
        "{% endfor %}"
        "</table>{% endif %}"
        "<p><small>{{ alert.timestamp }}</small></p>"
        "</body></html>"
    ),
}

# HTML templates are autoescaped, plain text ones are not
_text_env = Environment(loader=BaseLoader(), autoescape=False, undefined=StrictUndefined)
_html_env = Environment(
    loader=BaseLoader(),
    autoescape=select_autoescape(default_for_string=True),
    undefined=StrictUndefined,
)


def render_alert(name: str, **context: Any) -> str:
    """
    Render a named alert template.

    Raises:
        KeyError: Unknown template name
        jinja2.UndefinedError: Missing template variable
    """
    source = TEMPLATES[name]
    env = _html_env if name.endswith("_html") else _text_env
    return env.from_string(source).render(**context).strip()


__all__ = [
    "TEMPLATES",
    "render_alert",
]
