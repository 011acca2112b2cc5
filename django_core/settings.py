import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

SECRET_KEY = os.environ.get("GITDAV_SECRET_KEY", "gitdav-insecure-development-key")
DEBUG = os.environ.get("GITDAV_DEBUG", "").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("GITDAV_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if host.strip()
]

INSTALLED_APPS = [
    "objects_app",
]

MIDDLEWARE = []

ROOT_URLCONF = "django_core.urls"

# Objects are read straight from the repository; nothing is stored.
DATABASES = {}

USE_TZ = True

# Repository served by objects_app and the commit whose tree is exposed.
GITDAV_REPOSITORY = os.environ.get("GITDAV_REPOSITORY", ".")
GITDAV_COMMIT = os.environ.get("GITDAV_COMMIT", "")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "objects_app": {
            "handlers": ["console"],
            "level": "DEBUG" if DEBUG else "INFO",
            "propagate": False,
        },
    },
}
