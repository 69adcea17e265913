#!/usr/bin/env python3
"""
HEALCTL ADMIN CLIENT - Control Plane Transport
----------------------------------------------
A thin httpx wrapper around the two admin calls the heal controller needs:

    POST /minio/admin/v3/heal/{bucket}/{prefix}     start / poll / stop a sequence
    POST /minio/admin/v3/background-heal/status      background healer snapshot

Every failure, network or HTTP, surfaces as AdminClientError. Nothing is
retried here.

Author: HealCtl Team
Date: 2026-10-18
"""

import time
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx

from healctl.client.decoder import decode_background, decode_start, decode_status
from healctl.client.signer import SigV4Auth
from healctl.core.config import AliasConfig, DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT
from healctl.core.errors import AdminClientError
from healctl.core.models import BackgroundSummary, HealOptions, HealReply

logger = logging.getLogger("healctl.client")

ADMIN_API_PREFIX = "/minio/admin/v3"


class AdminClient:
    """
    One connection to one cluster. Use as a context manager so the
    underlying httpx.Client is closed.

    Polls (calls carrying a client token) are spaced at least `poll_interval`
    seconds apart, so following a sequence never turns into a busy loop even
    when the server answers immediately.
    """

    def __init__(self, base_url: str, auth: Optional[httpx.Auth] = None,
                 timeout: float = DEFAULT_TIMEOUT, poll_interval: float = DEFAULT_POLL_INTERVAL,
                 transport: Optional[httpx.BaseTransport] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 monotonic: Callable[[], float] = time.monotonic):
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._monotonic = monotonic
        self._last_poll: Optional[float] = None
        self._http = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    @classmethod
    def from_alias(cls, alias: AliasConfig, timeout: float = DEFAULT_TIMEOUT,
                   poll_interval: float = DEFAULT_POLL_INTERVAL) -> "AdminClient":
        auth = None
        if alias.access_key:
            auth = SigV4Auth(alias.access_key, alias.secret_key, region=alias.region)
        return cls(alias.url, auth=auth, timeout=timeout, poll_interval=poll_interval)

    def __enter__(self) -> "AdminClient":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self._http.close()

    def _pace(self):
        now = self._monotonic()
        if self._last_poll is not None:
            wait = self.poll_interval - (now - self._last_poll)
            if wait > 0:
                self._sleep(wait)
                now = self._monotonic()
        self._last_poll = now

    def _post(self, path: str, params: Optional[Dict[str, str]] = None,
              body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug(f"POST {path} params={params}")
        try:
            response = self._http.post(ADMIN_API_PREFIX + path, params=params, json=body)
        except httpx.RequestError as e:
            raise AdminClientError(f"Unable to reach {self.base_url}: {e}", code="ConnectionError")

        if response.status_code != 200:
            raise self._to_error(response)
        try:
            data = response.json()
        except ValueError:
            raise AdminClientError(
                f"Malformed reply from {self.base_url}{path}", code="InvalidResponse",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            raise AdminClientError(
                f"Unexpected reply from {self.base_url}{path}", code="InvalidResponse",
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _to_error(response: httpx.Response) -> AdminClientError:
        code, message = "", ""
        try:
            body = response.json()
            if isinstance(body, dict):
                code = str(body.get("Code") or "")
                message = str(body.get("Message") or "")
        except ValueError:
            message = response.text.strip()
        if not message:
            message = f"HTTP {response.status_code} {response.reason_phrase}"
        return AdminClientError(message, code=code, status_code=response.status_code)

    def heal(self, bucket: str, prefix: str, opts: HealOptions, client_token: str = "",
             force_start: bool = False, force_stop: bool = False) -> HealReply:
        """
        Starts (no token), polls (token) or stops (force_stop) a heal sequence.
        """
        path = "/heal/"
        if bucket:
            path += quote(bucket) + "/" + quote(prefix)

        params: Dict[str, str] = {}
        if client_token:
            params["clientToken"] = client_token
            self._pace()
        if force_start:
            params["forceStart"] = "true"
        if force_stop:
            params["forceStop"] = "true"

        data = self._post(path, params=params, body=opts.to_wire())

        if client_token:
            return HealReply(status=decode_status(data))
        if force_stop:
            return HealReply()
        has_items = "Items" in data or "items" in data
        return HealReply(handle=decode_start(data), status=decode_status(data) if has_items else None)

    def background_heal_status(self) -> BackgroundSummary:
        return decode_background(self._post("/background-heal/status"))
