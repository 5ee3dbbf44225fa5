import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('auction_id', models.UUIDField(db_index=True)),
                ('notification_type', models.CharField(choices=[('new_bid', 'New Bid'), ('outbid', 'Outbid'), ('bid_cancelled', 'Bid Cancelled'), ('winner_determined', 'Winner Determined'), ('auction_completed', 'Auction Completed'), ('auction_ended_no_winner', 'Auction Ended No Winner'), ('auction_ended_not_won', 'Auction Ended Not Won'), ('auction_cancelled', 'Auction Cancelled'), ('winner_changed', 'Winner Changed'), ('auction_reopened', 'Auction Reopened'), ('auction_ending_soon', 'Auction Ending Soon')], max_length=50)),
                ('message', models.TextField()),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('extra_data', models.JSONField(blank=True, null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='user_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
