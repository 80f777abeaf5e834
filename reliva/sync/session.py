import logging
from threading import RLock
from typing import Callable, Optional

from reliva.config import Config
from reliva.sync.api import ReviewsApi
from reliva.sync.cache import SessionCache
from reliva.sync.channel import LiveUpdateChannel
from reliva.sync.messages import AuthIntent, Event, Intent
from reliva.sync.records import Author

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def log_notification(title: str, description: str):
    logger.info("%s %s", title, description)


class ViewSession:
    """State shared by every reviews page: viewer, collaborators, channel.

    Inbound events arrive on the socket client's thread, so all state reads
    and writes happen under ``self._lock``.
    """

    def __init__(self, viewer: Author, api: Optional[ReviewsApi] = None,
                 cache: Optional[SessionCache] = None, channel_factory=None,
                 notifier: Optional[Notifier] = None, config=Config):
        self.viewer = viewer
        self.config = config
        self.api = api if api is not None else ReviewsApi(config=config)
        self.cache = cache if cache is not None else SessionCache.from_config(config)
        self.notify = notifier or log_notification
        self._channel_factory = channel_factory or (
            lambda on_event: LiveUpdateChannel(on_event, config=config)
        )
        self.channel = None
        self._lock = RLock()

    @property
    def is_live(self) -> bool:
        return self.channel is not None and self.channel.is_open

    def handshake(self) -> AuthIntent:
        raise NotImplementedError

    def handle_event(self, event: Event):
        raise NotImplementedError

    def connect(self) -> bool:
        if not self.viewer or not self.viewer.id:
            return False
        if self.is_live:
            return True
        if self.channel is None:
            self.channel = self._channel_factory(self.handle_event)
        return self.channel.open(self.handshake())

    def send(self, intent: Intent) -> bool:
        if not self.is_live:
            return False
        return self.channel.send(intent)

    def close(self):
        if self.channel is not None:
            self.channel.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
