"""
Factory definitions for reviews
"""
import factory
from factory.django import DjangoModelFactory
from widgets.factories import WidgetFactory
from .models import Review


class ReviewFactory(DjangoModelFactory):
    """Factory for creating widget reviews"""

    class Meta:
        model = Review

    widget = factory.SubFactory(WidgetFactory)
    business = factory.LazyAttribute(lambda obj: obj.widget.business)
    rating = 5
    customer_name = factory.Faker('first_name')
    customer_email = factory.Faker('email')
    title = factory.LazyAttribute(lambda obj: Review.title_for(obj.rating, obj.customer_name))
    content = factory.Faker('sentence')
    status = 'published'
    source = 'widget'
