import logging
from typing import Any, Dict, Optional

import httpx

from config import WEBHOOK_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class BestEffortNotifier:
    """
    Fire-and-forget JSON webhooks for the workflow-automation side channel.

    ``send`` logs every failure and never raises, so a broken webhook can't
    turn a successful upload or screening into an error.
    """

    def __init__(self, timeout: float = WEBHOOK_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    async def send(self, url: Optional[str], payload: Dict[str, Any]) -> bool:
        if not url:
            logger.info(f"No webhook configured, skipping '{payload.get('action', 'notification')}'")
            return False
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload)
            if response.is_success:
                logger.info(f"📨 Webhook {url} answered {response.status_code}")
                return True
            logger.warning(f"⚠️ Webhook {url} answered {response.status_code}: {response.text[:200]}")
        except Exception as e:
            logger.error(f"⚠️ Failed to send webhook to {url}: {e}")
        return False
