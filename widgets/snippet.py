"""
Embed snippet generation.

The snippet a business pastes into its site carries no per-widget executable
code. It is a container element, a scoped stylesheet, the widget settings as
an inert JSON block and a tag loading the versioned client script that is
served from our static files. Configuration strings only ever travel inside
the escaped JSON block, never inside markup or script source.
"""
import re

from django.conf import settings
from django.utils.html import escape, json_script

from .config import WidgetConfig

CONTAINER_ID_PREFIX = 'smart-review-widget-'
CLIENT_SCRIPT_PATH = 'widgets/review-widget.js'

_CODE_RE = re.compile(r'^[A-Za-z0-9_-]+$')

INSTALL_INSTRUCTIONS = [
    'Copy the widget code above',
    "Paste it into your website's HTML where you want the review widget to appear",
    'Save and publish your website',
    'The widget will automatically appear after the configured delay',
]


def container_id(widget_code):
    return f'{CONTAINER_ID_PREFIX}{widget_code}'


def client_script_url(base_url):
    """Absolute URL of the versioned client script"""
    static_url = settings.STATIC_URL
    if not static_url.startswith(('http://', 'https://', '//')):
        static_url = f'{base_url}{static_url}'
    return f'{static_url}{CLIENT_SCRIPT_PATH}?v={settings.WIDGET_SCRIPT_VERSION}'


def _style_block(config):
    scope = f'#{container_id(config.widget_code)}'
    rules = []
    if config.position_rule:
        rules.append(f'{scope} .srw-launcher {{ {config.position_rule} }}')
    if config.colors.primary:
        rules.append(
            f'{scope} .srw-launcher, {scope} .srw-submit {{ background: {config.colors.primary}; }}'
        )
    if config.colors.secondary:
        rules.append(f'{scope} .srw-cancel {{ background: {config.colors.secondary}; }}')
    if config.colors.text:
        rules.append(f'{scope} .srw-title {{ color: {config.colors.text}; }}')

    lines = [f'<style id="{container_id(config.widget_code)}-style">']
    lines.extend(rules)
    lines.append('</style>')
    return '\n'.join(lines)


def client_payload(config, base_url):
    """Settings handed to the client script through the JSON block"""
    return {
        'widgetId': config.widget_code,
        'title': config.title,
        'subtitle': config.subtitle,
        'buttonText': config.button_text,
        'theme': config.theme,
        'showAfter': config.show_after,
        'submitUrl': f'{base_url}{settings.WIDGET_SUBMIT_PATH}',
        'trackViewUrl': f'{base_url}{settings.WIDGET_TRACK_VIEW_PATH}',
    }


def generate_snippet(config: WidgetConfig, base_url: str) -> str:
    """
    Render the embed snippet for a widget.

    Deterministic: the same config and base URL always give the same string.
    Unknown positions and invalid colours simply produce no CSS rule.

    Args:
        config: Resolved WidgetConfig
        base_url: Origin of this app, e.g. "https://app.example.com"

    Returns:
        str: HTML fragment to paste into a page

    Raises:
        ValueError: If the widget code contains characters outside [A-Za-z0-9_-]
    """
    if not _CODE_RE.match(config.widget_code):
        raise ValueError(f'Malformed widget code: {config.widget_code!r}')

    base_url = base_url.rstrip('/')
    code = escape(config.widget_code)

    parts = [
        '<!-- Smart Review Widget -->',
        f'<div id="{container_id(code)}" data-widget-id="{code}"></div>',
        _style_block(config),
        str(json_script(client_payload(config, base_url), f'{container_id(code)}-config')),
        f'<script src="{escape(client_script_url(base_url))}" async></script>',
        '<!-- End Smart Review Widget -->',
    ]
    return '\n'.join(parts)


def snippet_for_widget(widget, base_url):
    return generate_snippet(WidgetConfig.from_widget(widget), base_url)
