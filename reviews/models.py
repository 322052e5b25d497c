import uuid
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from core.models import TimeStampedModel, Business
from core.managers import BusinessManager
from widgets.models import Widget


class Review(TimeStampedModel):
    """A customer review, collected through a widget or entered by the business"""

    STATUS_CHOICES = [
        ('published', 'Published'),
        ('pending', 'Pending'),
        ('hidden', 'Hidden'),
    ]

    SOURCE_CHOICES = [
        ('widget', 'Widget'),
        ('manual', 'Manual'),
        ('import', 'Import'),
    ]

    # Public identifier returned to the widget (distinct from the primary key)
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False, db_index=True)

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='reviews'
    )
    # Widgets are soft-disabled; deleting one with reviews is refused unless its business goes too
    widget = models.ForeignKey(
        Widget,
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name='reviews'
    )

    title = models.CharField(max_length=300)
    content = models.TextField()
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='published')
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='widget')

    ip_address = models.CharField(max_length=64, default='unknown')
    user_agent = models.TextField(default='unknown')

    objects = BusinessManager()

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['business', 'status'], name='reviews_business_status_idx'),
            models.Index(fields=['business', '-created_at'], name='reviews_business_created_idx'),
        ]

    def __str__(self):
        return self.title

    @staticmethod
    def title_for(rating, name):
        return f"{rating} star review from {name}"
