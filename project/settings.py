import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-local-development-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() == "true"
ALLOWED_HOSTS = [host for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "catalog.apps.CatalogConfig",
]

MIDDLEWARE = [
    "django.middleware.common.CommonMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "project.urls"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("POSTGRES_DB", "catalog"),
        "USER": os.environ.get("POSTGRES_USER", "catalog"),
        "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
        "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "PORT": os.environ.get("POSTGRES_PORT", "5432"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

# Vendor endpoints
LIPSEYS_BASE_URL = os.environ.get("LIPSEYS_BASE_URL", "https://api.lipseys.com")
LIPSEYS_IMAGE_BASE_URL = os.environ.get("LIPSEYS_IMAGE_BASE_URL", "https://www.lipseyscloud.com/images")
BILL_HICKS_CATALOG_PATH = os.environ.get("BILL_HICKS_CATALOG_PATH", "/MicroBiz/Feeds/MicroBiz_Daily_Catalog.csv")

# Timeouts are owned by the adapters, in seconds
CATALOG_HTTP_TIMEOUT = int(os.environ.get("CATALOG_HTTP_TIMEOUT", "120"))
CATALOG_SFTP_TIMEOUT = int(os.environ.get("CATALOG_SFTP_TIMEOUT", "60"))

# Catalog reconciliation
CATALOG_SYNC_MAX_JOBS = int(os.environ.get("CATALOG_SYNC_MAX_JOBS", "2"))
CATALOG_SYNC_MAX_WORKERS = int(os.environ.get("CATALOG_SYNC_MAX_WORKERS", "4"))
CATALOG_IMAGE_FALLBACK_ASYNC = os.environ.get("CATALOG_IMAGE_FALLBACK_ASYNC", "true").lower() == "true"
CATALOG_STUCK_SYNC_HOURS = int(os.environ.get("CATALOG_STUCK_SYNC_HOURS", "6"))
CATALOG_DEFAULT_RETAIL_VERTICAL_ID = int(os.environ.get("CATALOG_DEFAULT_RETAIL_VERTICAL_ID", "1"))
# Optional per-field override of catalog.constants.PRODUCT_FIELD_MERGE_POLICY
CATALOG_MERGE_FIELD_POLICY = {}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
