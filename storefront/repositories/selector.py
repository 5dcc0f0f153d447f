import logging

from storefront.core.errors import ConnectivityError

logger = logging.getLogger(__name__)


class BackendSelector:
    """Routes each repository call to the primary backend, falling back on
    ConnectivityError.

    Nothing is remembered between calls: every call tries the primary again,
    so a session may see the primary on one request and the fallback on the
    next.
    """

    def __init__(self, primary, fallback, name: str):
        self.primary = primary
        self.fallback = fallback
        self.name = name

    def run(self, operation: str, *args, **kwargs):
        try:
            return getattr(self.primary, operation)(*args, **kwargs)
        except ConnectivityError as e:
            logger.warning("%s.%s: primary unreachable (%s), using fallback", self.name, operation, e)
        return getattr(self.fallback, operation)(*args, **kwargs)

    def ping(self) -> bool:
        return self.primary.ping()
