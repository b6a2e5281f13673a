# service/twitter_service.py
import logging
from typing import Optional
import httpx
from config.settings import settings
from core.request_validator import tweet_id
from util.errors import UpstreamError

logger = logging.getLogger(__name__)


class TwitterService:
    """
    Resolves a claimed tweet url to the tweet's text via the Twitter v2 API.
    Any failure to produce text raises UpstreamError.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        bearer_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        api_url = api_url or settings.TWITTER_API_URL
        timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS
        self._url = api_url.rstrip("/")
        self._token = bearer_token or settings.TWITTER_BEARER_TOKEN
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self._transport = transport

    async def fetch_post_text(self, url: str) -> str:
        status_id = tweet_id(url)
        if status_id is None:
            raise UpstreamError(f"not a tweet url: {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                res = await client.get(
                    f"{self._url}/{status_id}",
                    headers={"Authorization": f"Bearer {self._token}"},
                )
        except httpx.RequestError as e:
            logger.error("twitter.request_error tweet=%s err=%s", status_id, type(e).__name__)
            raise UpstreamError("tweet lookup failed") from e

        if res.status_code != 200:
            logger.error("twitter.bad_status tweet=%s status=%d", status_id, res.status_code)
            raise UpstreamError(f"tweet lookup returned {res.status_code}")

        try:
            body = res.json()
        except ValueError as e:
            raise UpstreamError("tweet lookup returned invalid json") from e

        data = (body.get("data") if isinstance(body, dict) else None) or {}
        text = data.get("text")
        if not data.get("id") or not text:
            logger.warning("twitter.invalid_tweet tweet=%s", status_id)
            raise UpstreamError("invalid tweet")
        return text
