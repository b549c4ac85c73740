# Settings for the embedded content service.  Values which server
# administrators are expected to change can be set in
# /etc/embeds/embeds.conf (see config.py); everything else is a
# computed default.
from typing import Any, Dict

from .config import DEVELOPMENT, PRODUCTION, get_config, get_int_config

DEBUG = DEVELOPMENT

SECRET_KEY = get_config("secrets", "secret_key", "embeds-development-only-secret-key")

INSTALLED_APPS = [
    "embedded_content",
]

USE_I18N = True
LANGUAGE_CODE = "en-us"
USE_TZ = True
TIME_ZONE = "UTC"

TEST_SUITE = False

########################################################################
# CACHING CONFIGURATION
########################################################################

MEMCACHED_LOCATION = get_config("application_server", "memcached_location", "127.0.0.1:11211")

CACHES: Dict[str, Dict[str, object]] = {
    "default": {
        "BACKEND": "django_bmemcached.memcached.BMemcached",
        "LOCATION": MEMCACHED_LOCATION,
        "OPTIONS": {
            "socket_timeout": 3600,
            "username": get_config("application_server", "memcached_username"),
            "password": get_config("secrets", "memcached_password"),
            "pickle_protocol": 4,
        },
    },
    "in-memory": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    },
}

# Which of CACHES resolved embeds are stored in.
EMBED_CACHE_NAME = get_config("embeds", "cache_name", "default")
# Resolved embeds rarely change; keep them for a week.
EMBED_CACHE_TIMEOUT = get_int_config("embeds", "cache_timeout", 7 * 24 * 60 * 60)
EMBED_CACHE_KEY_PREFIX = get_config("embeds", "cache_key_prefix", "embeds:")

########################################################################
# OUTGOING REQUESTS TO EMBED PROVIDERS
########################################################################

EMBED_REQUEST_TIMEOUT = get_int_config("embeds", "request_timeout", 15)
EMBED_MAX_RETRIES = get_int_config("embeds", "max_retries", 0)
EMBED_USER_AGENT = get_config(
    "embeds",
    "user_agent",
    "Mozilla/5.0 (compatible; EmbeddedContentPreview/1.0)",
)
# Scraped pages are read up to this many bytes.
EMBED_MAX_RESPONSE_SIZE = get_int_config("embeds", "max_response_size", 1024 * 1024)

########################################################################
# LOGGING SETTINGS
########################################################################

LOGGING_SHOW_PID = False
LOGGING_SHOW_MODULE = False
EMBED_LOG_PATH = get_config(
    "embeds", "log_path", "/var/log/embeds/embeds.log" if PRODUCTION else ""
)

DEFAULT_EMBED_HANDLERS = ["console", "file"] if EMBED_LOG_PATH else ["console"]

LOGGING: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "embedded_content.lib.logging_util.EmbedFormatter",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
        **(
            {
                "file": {
                    "level": "DEBUG",
                    "class": "logging.handlers.WatchedFileHandler",
                    "formatter": "default",
                    "filename": EMBED_LOG_PATH,
                },
            }
            if EMBED_LOG_PATH
            else {}
        ),
    },
    "loggers": {
        # Style rules:
        #  * Always set `propagate=False` if setting `handlers`.
        #  * Always write in order: level, filters, handlers, propagate.
        "": {
            "level": "INFO",
            "handlers": DEFAULT_EMBED_HANDLERS,
        },
        "embedded_content": {
            "level": "DEBUG" if DEBUG else "INFO",
        },
        "urllib3": {
            # Retries and connection pool chatter.
            "level": "WARNING",
        },
    },
}

