"""Django settings for the order service.

Every deployment-specific value is read from the environment; the defaults
below are meant for local development only.
"""

import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str = "") -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework.authtoken",
    "common",
    "orders",
    "payments",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_ROOT = os.getenv("MEDIA_ROOT", str(BASE_DIR / "media"))
MEDIA_URL = os.getenv("MEDIA_URL", "/uploads/")

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "orders.api.authentication.BearerTokenAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "EXCEPTION_HANDLER": "orders.api.handlers.order_exception_handler",
}

# ---------------- Mail ----------------
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")
EMAIL_HOST = os.getenv("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _env_bool("EMAIL_USE_TLS", True)
EMAIL_TIMEOUT = int(os.getenv("EMAIL_TIMEOUT", "15"))
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "orders@localhost")

# ---------------- Orders ----------------
ORDERS_ADMIN_SECRET = os.getenv("ORDERS_ADMIN_SECRET", "")
# "token": bearer tokens are verified; "open": demo mode, identity is taken from the request
ORDERS_IDENTITY_MODE = os.getenv("ORDERS_IDENTITY_MODE", "token").strip().lower()
ORDERS_MAX_UPLOAD_BYTES = int(os.getenv("ORDERS_MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))
ORDERS_ALLOWED_EXTENSIONS = _env_list(
    "ORDERS_ALLOWED_EXTENSIONS", ".bin,.ori,.mod,.hex,.frf,.zip"
)
ORDERS_NOTIFY_ASYNC = _env_bool("ORDERS_NOTIFY_ASYNC", True)
ORDERS_ADMIN_EMAILS = _env_list("ORDERS_ADMIN_EMAILS")
ORDERS_CONFLICT_RETRIES = int(os.getenv("ORDERS_CONFLICT_RETRIES", "1"))
ORDERS_CONFLICT_BACKOFF_SECONDS = float(os.getenv("ORDERS_CONFLICT_BACKOFF_SECONDS", "0.05"))

# ---------------- Payments ----------------
PAYMENTS_ENABLED_PROVIDERS = _env_list("PAYMENTS_ENABLED_PROVIDERS", "paypal,mercadopago")
PAYMENTS_RETURN_URL = os.getenv("PAYMENTS_RETURN_URL", "http://localhost:3000/payment/return")
PAYMENTS_NOTIFICATION_BASE_URL = os.getenv("PAYMENTS_NOTIFICATION_BASE_URL", "")
PAYMENTS_HTTP_TIMEOUT = int(os.getenv("PAYMENTS_HTTP_TIMEOUT", "30"))

PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID", "")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET", "")
PAYPAL_API_BASE = os.getenv("PAYPAL_API_BASE", "https://api-m.sandbox.paypal.com")

MERCADOPAGO_ACCESS_TOKEN = os.getenv("MERCADOPAGO_ACCESS_TOKEN", "")
MERCADOPAGO_API_BASE = os.getenv("MERCADOPAGO_API_BASE", "https://api.mercadopago.com")

# ---------------- Logging ----------------
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOG_DIR / "orders.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "standard",
        },
    },
    "loggers": {
        "orders": {"handlers": ["console", "file"], "level": LOG_LEVEL, "propagate": False},
        "payments": {"handlers": ["console", "file"], "level": LOG_LEVEL, "propagate": False},
    },
}
