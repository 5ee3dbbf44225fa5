import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auctions', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('auction_created', 'Auction Created'), ('bid_placed', 'Bid Placed'), ('bid_updated', 'Bid Updated'), ('bid_cancelled', 'Bid Cancelled'), ('auction_completed', 'Auction Completed'), ('auction_cancelled', 'Auction Cancelled'), ('winner_reassigned', 'Winner Reassigned'), ('auction_reopened', 'Auction Reopened'), ('ending_soon_notified', 'Ending Soon Notified')], max_length=40)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_entries', to=settings.AUTH_USER_MODEL)),
                ('auction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_entries', to='auctions.auction')),
            ],
            options={
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['auction', 'created_at'], name='audit_auction_created_idx')],
            },
        ),
    ]
