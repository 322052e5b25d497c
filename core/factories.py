"""
Factory definitions for core models
"""
import factory
from factory.django import DjangoModelFactory
from django.contrib.auth.models import User
from .models import Business


class UserFactory(DjangoModelFactory):
    """Factory for creating test users"""

    class Meta:
        model = User
        django_get_or_create = ('username',)
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f'owner{n}@test.local')
    email = factory.LazyAttribute(lambda obj: obj.username)
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True
    is_staff = False
    is_superuser = False

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password for user"""
        if extracted:
            obj.set_password(extracted)
        else:
            obj.set_password('testpass123')
        if create:
            obj.save()


class BusinessFactory(DjangoModelFactory):
    """Factory for creating test businesses"""

    class Meta:
        model = Business

    owner = factory.SubFactory(UserFactory)
    name = factory.Sequence(lambda n: f'Test Business {n}')
    email = factory.LazyAttribute(lambda obj: obj.owner.email)
    industry = 'General'
    is_active = True
