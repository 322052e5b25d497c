"""
Tests for widget configuration and embed snippet generation.
"""
from django.contrib.staticfiles import finders
from django.test import SimpleTestCase, TestCase, override_settings

from widgets.config import DEFAULT_SHOW_AFTER, WidgetConfig, clean_color
from widgets.factories import WidgetFactory
from widgets.snippet import CLIENT_SCRIPT_PATH, client_script_url, generate_snippet, snippet_for_widget

BASE_URL = 'https://app.smartreview.test'


def make_config(**overrides):
    data = {
        'widget_code': 'widget_abc123def4567',
        'title': 'How was your experience?',
        'button_text': 'Leave a Review',
        'colors': {'primary': '#007cba'},
        'show_after': 5000,
        'position': 'bottom-right',
    }
    data.update(overrides)
    return WidgetConfig.from_mapping(data)


class WidgetConfigTest(SimpleTestCase):
    """Defaults are applied once, unknown values become None"""

    def test_missing_fields_get_defaults(self):
        config = WidgetConfig.from_mapping({'widget_code': 'widget_x'})
        self.assertEqual(config.name, 'Review Widget')
        self.assertEqual(config.title, 'How was your experience?')
        self.assertEqual(config.subtitle, "We'd love to hear your feedback!")
        self.assertEqual(config.button_text, 'Leave a Review')
        self.assertEqual(config.theme, 'light')
        self.assertEqual(config.position, 'bottom-right')
        self.assertEqual(config.show_after, 5000)
        self.assertEqual(config.colors.primary, '#007cba')
        self.assertEqual(config.colors.secondary, '#f8f9fa')
        self.assertEqual(config.colors.text, '#333333')

    def test_falsy_delay_falls_back_to_default(self):
        for value in (0, None, '', 'soon', -10, False):
            with self.subTest(value=value):
                self.assertEqual(make_config(show_after=value).show_after, DEFAULT_SHOW_AFTER)

    def test_explicit_delay_kept(self):
        self.assertEqual(make_config(show_after=1200).show_after, 1200)
        self.assertEqual(make_config(show_after='2500').show_after, 2500)

    def test_unknown_position_and_theme_become_none(self):
        config = make_config(position='middle', theme='neon')
        self.assertIsNone(config.position)
        self.assertIsNone(config.theme)
        self.assertEqual(config.position_rule, '')

    def test_non_string_position_becomes_none(self):
        self.assertIsNone(make_config(position=['bottom-right']).position)

    def test_invalid_colour_becomes_none(self):
        config = make_config(colors={'primary': 'red; } body { display: none', 'text': '#fff'})
        self.assertIsNone(config.colors.primary)
        self.assertEqual(config.colors.text, '#fff')
        # Absent keys still get defaults
        self.assertEqual(config.colors.secondary, '#f8f9fa')

    def test_clean_color(self):
        self.assertEqual(clean_color('#abc'), '#abc')
        self.assertEqual(clean_color(' #A1B2C3 '), '#A1B2C3')
        self.assertEqual(clean_color('rgb(0, 124, 186)'), 'rgb(0, 124, 186)')
        self.assertEqual(clean_color('rgba(0,0,0,0.5)'), 'rgba(0,0,0,0.5)')
        self.assertIsNone(clean_color('blue'))
        self.assertIsNone(clean_color('#12'))
        self.assertIsNone(clean_color('url(javascript:alert(1))'))
        self.assertIsNone(clean_color(123))


@override_settings(STATIC_URL='/static/', WIDGET_SCRIPT_VERSION='1')
class GenerateSnippetTest(SimpleTestCase):
    """Snippet output is deterministic and carries no per-widget script"""

    def test_same_config_gives_identical_output(self):
        self.assertEqual(
            generate_snippet(make_config(), BASE_URL),
            generate_snippet(make_config(), BASE_URL),
        )

    def test_changing_position_changes_only_the_position_rule(self):
        right = generate_snippet(make_config(position='bottom-right'), BASE_URL).splitlines()
        left = generate_snippet(make_config(position='top-left'), BASE_URL).splitlines()

        self.assertEqual(len(right), len(left))
        changed = [(a, b) for a, b in zip(right, left) if a != b]
        self.assertEqual(len(changed), 1)
        before, after = changed[0]
        self.assertIn('.srw-launcher { bottom: 20px; right: 20px; }', before)
        self.assertIn('.srw-launcher { top: 20px; left: 20px; }', after)

    def test_unknown_position_emits_no_position_rule(self):
        snippet = generate_snippet(make_config(position='center'), BASE_URL)
        for rule in ('bottom: 20px', 'top: 20px'):
            self.assertNotIn(rule, snippet)
        # Everything else still renders
        self.assertIn('smart-review-widget-widget_abc123def4567', snippet)

    def test_end_to_end_configuration(self):
        snippet = generate_snippet(make_config(), BASE_URL)
        self.assertIn('bottom: 20px; right: 20px;', snippet)
        self.assertIn('"showAfter": 5000', snippet)
        self.assertIn('background: #007cba;', snippet)
        self.assertIn('"submitUrl": "https://app.smartreview.test/api/widgets/submit-review/"', snippet)
        self.assertIn('<div id="smart-review-widget-widget_abc123def4567" data-widget-id="widget_abc123def4567"></div>', snippet)

    def test_absent_delay_renders_default(self):
        snippet = generate_snippet(make_config(show_after=None), BASE_URL)
        self.assertIn('"showAfter": 5000', snippet)

    def test_config_strings_are_escaped(self):
        snippet = generate_snippet(
            make_config(title='</script><script>alert(1)</script>', button_text='<img src=x onerror=alert(1)>'),
            BASE_URL,
        )
        self.assertNotIn('<script>alert(1)', snippet)
        self.assertNotIn('<img', snippet)
        self.assertIn('\\u003C/script\\u003E', snippet)

    def test_invalid_colour_emits_no_rule(self):
        snippet = generate_snippet(make_config(colors={'primary': 'expression(alert(1))'}), BASE_URL)
        self.assertNotIn('expression', snippet)
        self.assertNotIn('.srw-submit { background', snippet)

    def test_loads_versioned_static_client(self):
        snippet = generate_snippet(make_config(), BASE_URL)
        self.assertIn(
            '<script src="https://app.smartreview.test/static/widgets/review-widget.js?v=1" async></script>',
            snippet,
        )

    def test_trailing_slash_on_base_url_is_ignored(self):
        self.assertEqual(
            generate_snippet(make_config(), BASE_URL + '/'),
            generate_snippet(make_config(), BASE_URL),
        )

    def test_malformed_widget_code_rejected(self):
        with self.assertRaises(ValueError):
            generate_snippet(make_config(widget_code='widget_"><script>'), BASE_URL)

    @override_settings(STATIC_URL='https://cdn.example.com/static/', WIDGET_SCRIPT_VERSION='7')
    def test_absolute_static_url_used_as_is(self):
        self.assertEqual(
            client_script_url(BASE_URL),
            'https://cdn.example.com/static/widgets/review-widget.js?v=7',
        )


class SnippetForWidgetTest(TestCase):

    def test_renders_from_saved_widget(self):
        widget = WidgetFactory(position='top-right', show_after=0)
        snippet = snippet_for_widget(widget, BASE_URL)
        self.assertIn(f'smart-review-widget-{widget.widget_code}', snippet)
        self.assertIn('top: 20px; right: 20px;', snippet)
        self.assertIn('"showAfter": 5000', snippet)

    def test_widget_code_format(self):
        widget = WidgetFactory()
        self.assertRegex(widget.widget_code, r'^widget_[a-z0-9]{13}$')


class ClientScriptTest(SimpleTestCase):

    def test_script_is_collected(self):
        self.assertIsNotNone(finders.find(CLIENT_SCRIPT_PATH))

    def test_form_keeps_browser_validation(self):
        with open(finders.find(CLIENT_SCRIPT_PATH), encoding='utf-8') as f:
            source = f.read()
        self.assertIn("el('form', { 'class': 'srw-form' })", source)
        self.assertNotIn('novalidate', source)
