from django.conf import settings
from django.core.cache import cache


def query_key(name, *parts):
    """
    Logical query identifier, e.g. query_key('pharmacy_stock', pharmacy.id)
    """
    return ':'.join(['query', name] + [str(part) for part in parts])


def cached_query(key, producer, timeout=None):
    """
    Return the cached result for key, computing and storing it on a miss
    """
    result = cache.get(key)
    if result is None:
        result = producer()
        cache.set(key, result, timeout if timeout is not None else settings.QUERY_CACHE_TIMEOUT)
    return result


def invalidate_queries(*keys):
    if keys:
        cache.delete_many(list(keys))
