"""
Template tags rendering stream-aware island containers.

Usage:
    {% load island_tags %}

    {% streaming_island "ChatMessage" message_props container_id=island_id %}
    {% streaming_island "ChatContainer" chat_props css_class="chat-container-island" %}

The container carries the component name, a ``data-streamable`` marker and
the initial props as JSON in the state attribute, which is where merge and
replace actions later write.
"""

import json
import re
import secrets
from typing import Any, Dict, Optional

from django import template
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.html import format_html

from ..config import config as islands_config

register = template.Library()

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def default_container_id(name: str) -> str:
    """``ChatMessage`` -> ``chat_message_1a2b3c4d``"""
    base = _CAMEL_BOUNDARY_RE.sub("_", name).replace("-", "_").lower()
    return f"{base}_{secrets.token_hex(4)}"


def render_island_container(
    name: str,
    props: Optional[Dict[str, Any]] = None,
    container_id: Optional[str] = None,
    css_class: Optional[str] = None,
) -> str:
    """Return the container markup for a stream-aware island."""
    container_id = container_id or default_container_id(name)
    state = json.dumps(props or {}, cls=DjangoJSONEncoder)
    state_attribute = islands_config.get("state_attribute", "data-initial-state")
    if css_class:
        return format_html(
            '<div id="{}" class="{}" data-island="{}" data-streamable="true" {}="{}"></div>',
            container_id,
            css_class,
            name,
            state_attribute,
            state,
        )
    return format_html(
        '<div id="{}" data-island="{}" data-streamable="true" {}="{}"></div>',
        container_id,
        name,
        state_attribute,
        state,
    )


@register.simple_tag
def streaming_island(name, props=None, container_id=None, css_class=None):
    """
    Render a container that island streams can update.

    Args:
        name: Component name (e.g., "ChatMessage")
        props: Initial props dict
        container_id: Stable id to target from the server; generated when omitted
        css_class: Optional class attribute

    Example:
        {% streaming_island "ChatMessage" props container_id="message_1_island" %}
    """
    return render_island_container(name, props, container_id=container_id, css_class=css_class)
