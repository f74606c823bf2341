import asyncio
import logging
from typing import Any, Dict, Optional

from api.models import TELL_LATEST_TIP_INTENT, ConsentRecord, TipRecord
from api.services.storage import ConsentStore
from lib.error_handler import ErrorHandler
from lib.push_client import PushClient

logger = logging.getLogger(__name__)

DEFAULT_TITLE = 'AoG tips latest tip'

class FanoutDispatcher:
    """Notifies every consenting user when a new tip is stored.

    The push credential is required before anything is sent, so an
    authentication failure aborts the whole run. After that each recipient
    is attempted independently: one failed send is logged and never stops
    the others. There is no retry and no dedup, so a user with two consent
    rows gets two notifications.
    """

    def __init__(
        self,
        consent_store: ConsentStore,
        push_client: PushClient,
        intent: str = TELL_LATEST_TIP_INTENT,
        title: str = DEFAULT_TITLE
    ):
        self.consents = consent_store
        self.push = push_client
        self.intent = intent
        self.title = title

    def build_notification(self, record: ConsentRecord) -> Dict[str, Any]:
        return {
            'userNotification': {'title': self.title},
            'target': {'userId': record.user_id, 'intent': record.intent}
        }

    async def dispatch(self, tip: Optional[TipRecord] = None) -> int:
        """Send one notification per consent row; returns attempts made"""
        logger.info(f"Starting fanout for new tip: {tip.id if tip else None}")
        token = await self.push.authenticate()

        recipients = await self.consents.find_by_intent(self.intent)
        logger.info(f"Found {len(recipients)} recipients for {self.intent}")
        if not recipients:
            return 0

        async with self.push.session() as session:
            await asyncio.gather(*[
                self._deliver(session, token, record) for record in recipients
            ])
        logger.info(f"Fanout finished: {len(recipients)} delivery attempts")
        return len(recipients)

    async def _deliver(self, session, token: str, record: ConsentRecord) -> bool:
        try:
            await self.push.send(session, token, self.build_notification(record))
            return True
        except Exception as e:
            ErrorHandler.handle_delivery_error(record.user_id, e)
            return False
