import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'Freight.settings')

app = Celery('Freight')
# CELERY_* settings, including the beat schedule, come from Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
