"""
Django settings for Freight project.
"""

from pathlib import Path
import os
import dj_database_url

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Security - use environment variables
SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-fallback-key-for-development-only')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'

ALLOWED_HOSTS = [
    '.onrender.com',
    'localhost',
    '127.0.0.1',
]

AUTH_USER_MODEL = 'accounts.User'

# Applications
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "accounts",
    "notifications",
    "audit",
    'rest_framework',
    'drf_yasg',
    'auctions',
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "Freight.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "Freight.wsgi.application"

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'accounts.authentication.JWTAuthentication',
    ]
}

JWT_ALGORITHM = 'HS256'

# Database Configuration for Render
DATABASES = {
    'default': dj_database_url.config(
        default='sqlite:///db.sqlite3',
        conn_max_age=600
    )
}

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

# Auction engine
AUCTION_MIN_DURATION_SECONDS = int(os.environ.get('AUCTION_MIN_DURATION_SECONDS', 5 * 60))
AUCTION_MAX_DURATION_SECONDS = int(os.environ.get('AUCTION_MAX_DURATION_SECONDS', 7 * 24 * 3600))
AUCTION_REOPEN_GRACE_SECONDS = int(os.environ.get('AUCTION_REOPEN_GRACE_SECONDS', 24 * 3600))
AUCTION_SWEEP_BATCH_SIZE = int(os.environ.get('AUCTION_SWEEP_BATCH_SIZE', 50))
AUCTION_SWEEP_INTERVAL_SECONDS = int(os.environ.get('AUCTION_SWEEP_INTERVAL_SECONDS', 60))
AUCTION_ENDING_SOON_WINDOW_SECONDS = int(os.environ.get('AUCTION_ENDING_SOON_WINDOW_SECONDS', 30 * 60))
AUCTION_ENDING_SOON_CHECK_SECONDS = int(os.environ.get('AUCTION_ENDING_SOON_CHECK_SECONDS', 5 * 60))
AUCTION_WINNER_POLICY = os.environ.get('AUCTION_WINNER_POLICY', 'lowest')
AUCTION_CLOSE_MAX_RETRIES = 3
AUCTION_CLOSE_RETRY_BACKOFF_MS = 50
AUCTION_NOTIFICATION_DISPATCHER = os.environ.get(
    'AUCTION_NOTIFICATION_DISPATCHER', 'notifications.utils.store_in_app'
)

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files configuration
STATIC_URL = "/static/"
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Celery Configuration
CELERY_BROKER_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
CELERY_TIMEZONE = 'UTC'
CELERY_BEAT_SCHEDULE = {
    'close-expired-auctions': {
        'task': 'auctions.tasks.close_due_auctions_task',
        'schedule': float(AUCTION_SWEEP_INTERVAL_SECONDS),
    },
    'notify-auctions-ending-soon': {
        'task': 'auctions.tasks.notify_ending_soon_task',
        'schedule': float(AUCTION_ENDING_SOON_CHECK_SECONDS),
    },
}

# Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s [%(name)s] %(levelname)-8s %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django.db.backends': {
            'level': 'WARNING',
        },
    },
}

# Security settings for production
if not DEBUG:
    SECURE_SSL_REDIRECT = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_BROWSER_XSS_FILTER = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
