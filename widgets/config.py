"""
Resolved widget configuration.

Widgets are stored with loosely-typed fields (JSON colours, free strings for
theme and position). Everything downstream of the database works with a
WidgetConfig instead, built in exactly one place so that defaults are applied
once and unrecognised values are normalised to None rather than passed along.
"""
import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_SHOW_AFTER = 5000

DEFAULT_COLORS = {
    'primary': '#007cba',
    'secondary': '#f8f9fa',
    'text': '#333333',
}

WIDGET_DEFAULTS = {
    'name': 'Review Widget',
    'title': 'How was your experience?',
    'subtitle': "We'd love to hear your feedback!",
    'button_text': 'Leave a Review',
    'theme': 'light',
    'position': 'bottom-right',
    'show_after': DEFAULT_SHOW_AFTER,
}

THEMES = ('light', 'dark')

# Anchor position -> CSS declarations for the floating call-to-action
POSITION_RULES = {
    'bottom-right': 'bottom: 20px; right: 20px;',
    'bottom-left': 'bottom: 20px; left: 20px;',
    'top-right': 'top: 20px; right: 20px;',
    'top-left': 'top: 20px; left: 20px;',
}

_HEX_COLOR = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$')
_RGB_COLOR = re.compile(r'^rgba?\(\s*\d{1,3}%?\s*,\s*\d{1,3}%?\s*,\s*\d{1,3}%?\s*(?:,\s*(?:0|1|0?\.\d+))?\s*\)$')


def clean_color(value):
    """Return the colour if it is a hex or rgb()/rgba() value, else None"""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if _HEX_COLOR.match(value) or _RGB_COLOR.match(value):
        return value
    return None


def _text(value, default):
    if value is None:
        return default
    value = str(value)
    return value if value.strip() else default


def _show_after(value):
    # Falsy or unparseable delays fall back to the default
    if isinstance(value, bool):
        return DEFAULT_SHOW_AFTER
    try:
        value = int(value)
    except (TypeError, ValueError):
        return DEFAULT_SHOW_AFTER
    return value if value > 0 else DEFAULT_SHOW_AFTER


def _choice(value, allowed, default):
    if value is None or value == '':
        return default
    if not isinstance(value, str):
        return None
    return value if value in allowed else None


@dataclass(frozen=True)
class Colors:
    primary: Optional[str]
    secondary: Optional[str]
    text: Optional[str]

    @classmethod
    def from_mapping(cls, data):
        if not isinstance(data, dict):
            data = {}

        def pick(key):
            raw = data.get(key)
            if raw is None or raw == '':
                return DEFAULT_COLORS[key]
            return clean_color(raw)

        return cls(primary=pick('primary'), secondary=pick('secondary'), text=pick('text'))


@dataclass(frozen=True)
class WidgetConfig:
    """
    Everything the snippet generator needs, with every field resolved.

    theme and position are None when the stored value is not one of the
    recognised choices; colours are None when they are not valid CSS colours.
    """
    widget_code: str
    name: str
    title: str
    subtitle: str
    button_text: str
    theme: Optional[str]
    position: Optional[str]
    show_after: int
    colors: Colors

    @classmethod
    def from_mapping(cls, data):
        """Build a config from a plain dict (API payload, fixtures, admin previews)"""
        return cls(
            widget_code=str(data['widget_code']),
            name=_text(data.get('name'), WIDGET_DEFAULTS['name']),
            title=_text(data.get('title'), WIDGET_DEFAULTS['title']),
            subtitle=_text(data.get('subtitle'), WIDGET_DEFAULTS['subtitle']),
            button_text=_text(data.get('button_text'), WIDGET_DEFAULTS['button_text']),
            theme=_choice(data.get('theme'), THEMES, WIDGET_DEFAULTS['theme']),
            position=_choice(data.get('position'), POSITION_RULES, WIDGET_DEFAULTS['position']),
            show_after=_show_after(data.get('show_after')),
            colors=Colors.from_mapping(data.get('colors')),
        )

    @classmethod
    def from_widget(cls, widget):
        return cls.from_mapping({
            'widget_code': widget.widget_code,
            'name': widget.name,
            'title': widget.title,
            'subtitle': widget.subtitle,
            'button_text': widget.button_text,
            'theme': widget.theme,
            'position': widget.position,
            'show_after': widget.show_after,
            'colors': widget.colors,
        })

    @property
    def position_rule(self):
        """CSS declarations for the anchor, or '' when the position is unknown"""
        return POSITION_RULES.get(self.position, '')
