from django.db import models
from django.contrib.auth.models import User


class TimeStampedModel(models.Model):
    """Abstract base model with created and updated timestamps"""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Business(TimeStampedModel):
    """Business model for multi-tenant support - owns widgets, reviews and billing"""
    owner = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='business'
    )
    name = models.CharField(max_length=255)
    email = models.EmailField()
    industry = models.CharField(max_length=100, default='General')
    website = models.URLField(blank=True)

    # External listings, used when pointing happy customers at public review sites
    google_place_id = models.CharField(max_length=255, blank=True)
    yelp_business_id = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'businesses'
        ordering = ['name']
        verbose_name_plural = 'Businesses'

    def __str__(self):
        return self.name
