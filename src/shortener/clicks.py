from logging import getLogger

from shortener.schemas import ClickMetadata, ClickRecord, DeviceClass
from shortener.store import ClickStore

logger = getLogger('shortener_clicks')

MOBILE_TOKENS = ('Mobile', 'iPhone')
TABLET_TOKENS = ('Tablet', 'iPad')
DESKTOP_TOKENS = ('Desktop', 'Windows', 'Mac', 'X11')


def detect_device_class(user_agent: str | None) -> DeviceClass:
    # substring heuristic, not a user-agent parser
    if not user_agent:
        return DeviceClass.OTHER
    if any(token in user_agent for token in MOBILE_TOKENS):
        return DeviceClass.MOBILE
    if any(token in user_agent for token in TABLET_TOKENS):
        return DeviceClass.TABLET
    if any(token in user_agent for token in DESKTOP_TOKENS):
        return DeviceClass.DESKTOP
    return DeviceClass.OTHER


class ClickRecorder:

    def __init__(self, store: ClickStore):
        self.store = store

    async def record(self, link_id: int, metadata: ClickMetadata) -> ClickRecord | None:
        """Stores one click. Never raises: a lost click must not affect the redirect."""
        try:
            click = ClickRecord(
                link_id=link_id,
                device_class=detect_device_class(metadata.user_agent),
                **metadata.model_dump(),
            )
            return await self.store.insert(click)
        except Exception:
            logger.exception(f"Analytics tracking error for link {link_id}")
            return None
