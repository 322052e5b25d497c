"""
Factory definitions for widgets
"""
import factory
from factory.django import DjangoModelFactory
from core.factories import BusinessFactory
from .models import Widget, default_colors


class WidgetFactory(DjangoModelFactory):
    """Factory for creating test widgets"""

    class Meta:
        model = Widget

    business = factory.SubFactory(BusinessFactory)
    name = factory.Sequence(lambda n: f'Widget {n}')
    title = 'How was your experience?'
    subtitle = "We'd love to hear your feedback!"
    button_text = 'Leave a Review'
    theme = 'light'
    position = 'bottom-right'
    show_after = 5000
    colors = factory.LazyFunction(default_colors)
    is_active = True
