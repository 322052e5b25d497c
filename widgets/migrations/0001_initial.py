from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import widgets.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Widget',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('widget_code', models.CharField(db_index=True, editable=False, help_text='Public identifier used in embed snippets', max_length=64, unique=True, validators=[django.core.validators.RegexValidator('^[A-Za-z0-9_-]+$')])),
                ('name', models.CharField(default='Review Widget', max_length=255)),
                ('title', models.CharField(default='How was your experience?', max_length=255)),
                ('subtitle', models.CharField(blank=True, default="We'd love to hear your feedback!", max_length=500)),
                ('button_text', models.CharField(default='Leave a Review', max_length=100)),
                ('theme', models.CharField(choices=[('light', 'Light'), ('dark', 'Dark')], default='light', max_length=20)),
                ('position', models.CharField(choices=[('bottom-right', 'Bottom Right'), ('bottom-left', 'Bottom Left'), ('top-right', 'Top Right'), ('top-left', 'Top Left')], default='bottom-right', max_length=20)),
                ('show_after', models.PositiveIntegerField(default=5000, help_text='Delay in milliseconds before the call-to-action appears', validators=[django.core.validators.MinValueValidator(0)])),
                ('colors', models.JSONField(default=widgets.models.default_colors, help_text='{"primary": "#007cba", "secondary": "#f8f9fa", "text": "#333333"}')),
                ('is_active', models.BooleanField(default=True)),
                ('views', models.PositiveIntegerField(default=0, editable=False)),
                ('clicks', models.PositiveIntegerField(default=0, editable=False)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='widgets', to='core.business')),
            ],
            options={
                'db_table': 'widgets',
                'ordering': ['-created_at'],
            },
        ),
    ]
