import logging
from typing import Any, Dict, Optional

from api.conversation import Reply
from api.models import TELL_LATEST_TIP_INTENT, TELL_TIP_INTENT, ConsentRecord
from api.services.storage import ConsentStore

logger = logging.getLogger(__name__)

PUSH_CONFIRMED = "Ok, I'll start alerting you."
PUSH_DECLINED = "Ok, I won't alert you."
UPDATES_CONFIRMED = "Ok, I'll start giving you daily updates."
UPDATES_DECLINED = "Ok, I won't give you daily updates."

class OptInWorkflow:
    """Consent dialogues for push alerts and daily updates.

    Push alerts take two turns: ``request_push`` asks the platform for
    permission, and the platform answers in a later ``finish_push_setup``
    turn. Only an affirmative answer writes a consent row. Daily updates are
    registered by the platform itself, so nothing is stored here.
    """

    def __init__(self, consent_store: ConsentStore, target_intent: str = TELL_LATEST_TIP_INTENT):
        self.consents = consent_store
        self.target_intent = target_intent

    def request_push(self, user_storage: Optional[Dict[str, Any]] = None) -> Reply:
        logger.info(f"Requesting push permission for intent: {self.target_intent}")
        return Reply(user_storage).request_permission(self.target_intent)

    async def finish_push_setup(
        self,
        permission: bool,
        user_id: Optional[str],
        user_storage: Optional[Dict[str, Any]] = None
    ) -> Reply:
        reply = Reply(user_storage)
        if permission is not True:
            logger.info("Push permission declined")
            return reply.close(PUSH_DECLINED)

        if not user_id:
            # Granted but the platform sent no id to target; nothing to store
            logger.error("Push permission granted without UPDATES_USER_ID")
            return reply.close(PUSH_DECLINED)

        record = ConsentRecord(user_id=user_id, intent=self.target_intent)
        # Store errors propagate; the webhook turns them into an apology
        await self.consents.add(record)
        logger.info(f"Stored push consent for {user_id} on {self.target_intent}")
        return reply.close(PUSH_CONFIRMED)

    def request_daily_updates(self, category: str, user_storage: Optional[Dict[str, Any]] = None) -> Reply:
        logger.info(f"Requesting daily updates for category: {category}")
        return Reply(user_storage).register_update(
            TELL_TIP_INTENT,
            arguments=[{'name': 'category', 'textValue': category}],
            frequency='DAILY'
        )

    def finish_update_setup(
        self,
        registered: Optional[Dict[str, Any]],
        user_storage: Optional[Dict[str, Any]] = None
    ) -> Reply:
        reply = Reply(user_storage)
        if registered and registered.get('status') == 'OK':
            logger.info("Daily updates registered")
            return reply.close(UPDATES_CONFIRMED)
        logger.info(f"Daily updates not registered: {registered}")
        return reply.close(UPDATES_DECLINED)
