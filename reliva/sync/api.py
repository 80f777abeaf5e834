import json
import logging
from threading import Lock
from typing import List, Optional
from urllib.parse import quote

import urllib3
from marshmallow import ValidationError

from reliva.config import Config
from reliva.sync.records import Comment, Post, comment_from_wire, posts_from_wire

logger = logging.getLogger(__name__)


class ApiError(Exception):
    pass


class ReviewsApi:
    """Blocking client for the reviews REST endpoints."""

    def __init__(self, base_url: Optional[str] = None, http=None, config=Config):
        self.base_url = (base_url or config.API_BASE).rstrip("/")
        self._http = http
        self._config = config
        self._lock = Lock()

    @property
    def http(self):
        with self._lock:
            if self._http is None:
                timeout = urllib3.Timeout(
                    connect=self._config.API_CONNECT_TIMEOUT,
                    read=self._config.API_READ_TIMEOUT,
                )
                self._http = urllib3.PoolManager(
                    timeout=timeout,
                    retries=False,
                    maxsize=self._config.API_POOL_MAXSIZE,
                )
            return self._http

    def _get_json(self, path: str, fields=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request("GET", url, fields=fields)
        except urllib3.exceptions.HTTPError as e:
            raise ApiError(f"GET {url} failed: {e}") from e

        try:
            body = json.loads(response.data.decode("utf-8")) if response.data else {}
        except ValueError as e:
            raise ApiError(f"GET {url} returned invalid JSON") from e

        return response.status, body

    def fetch_posts(self, user_id: Optional[str]) -> List[Post]:
        status, body = self._get_json("/posts", fields={"userId": user_id or "demo"})
        if status != 200 or not isinstance(body, dict) or not body.get("success"):
            raise ApiError(f"Feed request failed with status {status}")

        try:
            return posts_from_wire(body.get("posts") or [])
        except ValidationError as e:
            raise ApiError(f"Feed payload failed validation: {e.messages}") from e

    def fetch_comment(self, comment_id: str) -> Optional[Comment]:
        try:
            status, body = self._get_json(f"/comments/{quote(comment_id, safe='')}")
        except ApiError as e:
            logger.warning("Could not fetch comment %s: %s", comment_id, e)
            return None

        if status != 200 or not isinstance(body, dict) or not body.get("success"):
            return None
        if not body.get("comment"):
            return None

        try:
            return comment_from_wire(body["comment"])
        except ValidationError as e:
            logger.warning("Comment %s failed validation: %s", comment_id, e.messages)
            return None

    def close(self):
        with self._lock:
            if self._http is not None:
                self._http.clear()
