# Caching of resolved embeds, through Django's cache framework.
import hashlib
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from bmemcached.exceptions import MemcachedException
from django.conf import settings
from django.core.cache import caches
from django.core.cache.backends.base import BaseCache
from typing_extensions import override

from embedded_content.lib.embeds.base import AbstractEmbed

MEMCACHED_MAX_KEY_LENGTH = 250

logger = logging.getLogger(__name__)


class InvalidCacheKeyError(Exception):
    pass


def get_key_prefix() -> str:
    return settings.EMBED_CACHE_KEY_PREFIX


def get_cache_backend(cache_name: str | None) -> BaseCache:
    if cache_name is None:
        cache_name = "default"
    return caches[cache_name]


def validate_cache_key(key: str, auto_prepend_prefix: bool = True) -> None:
    if auto_prepend_prefix and not key.startswith(get_key_prefix()):
        key = get_key_prefix() + key

    # Theoretically memcached can handle non-ascii characters and
    # only "control" characters are strictly disallowed; we only
    # allow "all characters between ! and ~ in the ascii table".
    if not bool(re.fullmatch(r"([!-~])+", key)):
        raise InvalidCacheKeyError("Invalid characters in the cache key: " + key)
    if len(key) > MEMCACHED_MAX_KEY_LENGTH:
        raise InvalidCacheKeyError(f"Cache key too long: {key} Length: {len(key)}")


def cache_set(
    key: str, val: Any, cache_name: str | None = None, timeout: int | None = None
) -> None:
    final_key = get_key_prefix() + key
    validate_cache_key(final_key)

    cache_backend = get_cache_backend(cache_name)
    try:
        # Values are singleton tuples so that we can distinguish
        # a result of None from a missing key.
        cache_backend.set(final_key, (val,), timeout=timeout)
    except MemcachedException as e:
        logger.exception(e)


def cache_get(key: str, cache_name: str | None = None) -> Any:
    final_key = get_key_prefix() + key
    validate_cache_key(final_key)

    cache_backend = get_cache_backend(cache_name)
    return cache_backend.get(final_key)


def cache_delete(key: str, cache_name: str | None = None) -> None:
    final_key = get_key_prefix() + key
    validate_cache_key(final_key)

    get_cache_backend(cache_name).delete(final_key)


def embed_url_cache_key(url: str) -> str:
    return f"embed_url:{hashlib.sha1(url.encode()).hexdigest()}"


class EmbedCache(ABC):
    @abstractmethod
    def get_cached_embed(self, url: str) -> AbstractEmbed | None:
        pass

    @abstractmethod
    def cache_embed(self, embed: AbstractEmbed) -> None:
        """Store the embed, keyed by its own url."""


class DjangoEmbedCache(EmbedCache):
    def __init__(self, cache_name: str | None = None, timeout: int | None = None) -> None:
        self.cache_name = settings.EMBED_CACHE_NAME if cache_name is None else cache_name
        self.timeout = settings.EMBED_CACHE_TIMEOUT if timeout is None else timeout

    @override
    def get_cached_embed(self, url: str) -> AbstractEmbed | None:
        val = cache_get(embed_url_cache_key(url), cache_name=self.cache_name)
        if val is None:
            return None
        embed = val[0]
        if not isinstance(embed, AbstractEmbed):
            logger.warning("Ignoring unexpected cached value for %s: %r", url, embed)
            return None
        return embed

    @override
    def cache_embed(self, embed: AbstractEmbed) -> None:
        if embed.url is None:
            logger.warning("Not caching %s embed without a url", embed.TYPE)
            return
        cache_set(
            embed_url_cache_key(embed.url),
            embed,
            cache_name=self.cache_name,
            timeout=self.timeout,
        )

    def invalidate(self, url: str) -> None:
        cache_delete(embed_url_cache_key(url), cache_name=self.cache_name)
