"""
Custom model managers for business-scoped multitenancy.

These managers enforce business-level data isolation by default.
"""
from django.db import models


class BusinessQuerySet(models.QuerySet):
    """Custom QuerySet with business filtering"""

    def for_business(self, business):
        """
        Filter by business.

        Args:
            business: Business instance or None

        Returns:
            QuerySet filtered by business (or empty if business is None)
        """
        if business is None:
            return self.none()
        return self.filter(business=business)

    def active(self):
        """Only rows whose is_active flag is set"""
        return self.filter(is_active=True)


class BusinessManager(models.Manager):
    """
    Manager that filters querysets by business.

    Usage:
        Model.objects.for_business(business)  # Returns business-scoped queryset
        Model.objects.all()                   # Returns all (use with caution)
    """

    def get_queryset(self):
        """Return custom QuerySet"""
        return BusinessQuerySet(self.model, using=self._db)

    def for_business(self, business):
        """Return queryset filtered by business (empty if business is None)"""
        return self.get_queryset().for_business(business)
