"""
Downstream webhook client.

Delivers one multipart POST per forwarded session. The client never follows
proxy settings from the environment and puts no ceiling on the payload size;
the only bound is the total send timeout.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

import aiohttp
from loguru import logger

from ...core.domain.session import FileRecord
from ...core.exceptions import ForwardingError
from ...core.interfaces.lifecycle import IComponent
from ...core.interfaces.relay import IWebhookClient
from ..config.models import DownstreamConfig


@dataclass(frozen=True)
class DeliveryResult:
    """Downstream response to a successful delivery."""
    status: int
    body: str
    duration: float


class WebhookClient(IWebhookClient, IComponent):
    """aiohttp-based client for the downstream webhook."""

    def __init__(self, config: DownstreamConfig) -> None:
        self._config = config
        self._session: Optional[aiohttp.ClientSession] = None
        self._stats = {
            "deliveries": 0,
            "failures": 0,
            "last_status": None,
        }

    @property
    def name(self) -> str:
        return "WebhookClient"

    async def start(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._config.send_timeout),
            trust_env=False,
        )
        logger.info(f"Webhook client targeting {self._config.webhook_url}")

    async def stop(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def check_health(self) -> Dict[str, Any]:
        running = self._session is not None and not self._session.closed
        return {
            "healthy": running,
            "status": "running" if running else "stopped",
            "details": {
                "webhook_url": self._config.webhook_url,
                "send_timeout": self._config.send_timeout,
                "statistics": dict(self._stats),
            },
        }

    def build_form(self, files: List[Tuple[FileRecord, BinaryIO]],
                   fields: Dict[str, str]) -> aiohttp.FormData:
        """Files first, in session order, then one part per metadata field."""
        form = aiohttp.FormData()
        for record, handle in files:
            form.add_field(
                self._config.file_field,
                handle,
                filename=record.original_name,
                content_type=record.content_type or "application/octet-stream",
            )
        for name, value in fields.items():
            form.add_field(name, value)
        return form

    async def deliver(self, files: List[Tuple[FileRecord, BinaryIO]],
                      fields: Dict[str, str], session_id: str) -> DeliveryResult:
        if self._session is None or self._session.closed:
            raise ForwardingError("Webhook client is not started", session_id)

        form = self.build_form(files, fields)
        headers = {}
        if self._config.auth_token:
            headers[self._config.auth_header] = self._config.auth_token

        started = time.monotonic()
        self._stats["deliveries"] += 1
        try:
            async with self._session.post(self._config.webhook_url, data=form,
                                          headers=headers) as response:
                body = await response.text()
                self._stats["last_status"] = response.status
        except asyncio.TimeoutError as e:
            self._stats["failures"] += 1
            raise ForwardingError(
                f"Webhook timed out after {self._config.send_timeout}s", session_id) from e
        except aiohttp.ClientError as e:
            self._stats["failures"] += 1
            raise ForwardingError(f"Webhook unreachable: {e}", session_id) from e

        if not 200 <= response.status < 300:
            self._stats["failures"] += 1
            raise ForwardingError(
                f"Webhook responded with HTTP {response.status}",
                session_id,
                response_status=response.status,
                response_body=body[:2048],
            )

        return DeliveryResult(status=response.status, body=body,
                              duration=time.monotonic() - started)
