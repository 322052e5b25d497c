import random
from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError
from core.models import Business
from reviews.models import Review
from widgets.models import Widget

SAMPLE_REVIEWS = [
    ('Sarah Johnson', 'sarah.j@email.com', 5,
     'Excellent service! The staff was very friendly and professional. Highly recommend!'),
    ('Mike Chen', 'mike.chen@email.com', 4,
     'Great experience overall. Quick service and good quality. Will definitely come back.'),
    ('Emily Davis', 'emily.davis@email.com', 5,
     'Outstanding! Exceeded my expectations in every way. Thank you so much!'),
    ('Robert Wilson', 'r.wilson@email.com', 3,
     'Decent service, but there is room for improvement. The wait time was a bit long.'),
    ('Lisa Anderson', 'lisa.a@email.com', 5,
     'Amazing experience! Everyone was so helpful and the results were perfect.'),
    ('David Brown', 'david.brown@email.com', 4,
     'Very satisfied with the service. Professional and efficient.'),
]


class Command(BaseCommand):
    help = 'Fill a business with sample reviews for demos'

    def add_arguments(self, parser):
        parser.add_argument('email', type=str, help='Email of the business owner')
        parser.add_argument('--count', type=int, default=len(SAMPLE_REVIEWS), help='Number of reviews')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for repeatable output')

    def handle(self, *args, **options):
        user = User.objects.filter(email=options['email'].lower()).first()
        if user is None:
            raise CommandError(f"No user with email {options['email']}")

        try:
            business = user.business
        except Business.DoesNotExist:
            raise CommandError(f"{options['email']} has no business yet")

        widget = Widget.objects.for_business(business).active().first()
        rng = random.Random(options['seed'])

        reviews = []
        for i in range(options['count']):
            name, email, rating, content = SAMPLE_REVIEWS[i % len(SAMPLE_REVIEWS)]
            reviews.append(Review(
                business=business,
                widget=widget,
                title=Review.title_for(rating, name),
                content=content,
                rating=rating,
                customer_name=name,
                customer_email=email,
                status=rng.choice(['published', 'published', 'published', 'pending']),
                source='import',
            ))

        Review.objects.bulk_create(reviews)
        self.stdout.write(self.style.SUCCESS(
            f'Created {len(reviews)} demo reviews for {business.name}'
        ))
