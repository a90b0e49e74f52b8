from dataclasses import dataclass
from logging import getLogger

from shortener.errors import LinkGone, LinkNotFound
from shortener.store import LinkStore
from shortener.utils import check_short_code, utcnow

logger = getLogger('shortener_redirect')


@dataclass(frozen=True)
class Redirect:
    target_url: str
    link_id: int


class RedirectResolver:
    """Turns an inbound short code into a redirect target.

    Checks run in a fixed order: syntax, existence, active flag, expiry.
    A code that was never created is reported as not found, never as gone.
    All facts come from a single store read.
    """

    def __init__(self, store: LinkStore):
        self.store = store

    async def resolve(self, short_code: str, client_ip: str | None = None) -> Redirect:
        check_short_code(short_code, client_ip)

        link = await self.store.get_by_code(short_code)
        if link is None:
            raise LinkNotFound()

        if not link.is_active:
            logger.debug(f"Link {short_code} is disabled")
            raise LinkGone("disabled")

        if link.is_expired(utcnow()):
            logger.debug(f"Link {short_code} is expired")
            raise LinkGone("expired")

        return Redirect(target_url=link.original_url, link_id=link.id)
