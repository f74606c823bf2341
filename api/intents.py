import logging
import random
from typing import Awaitable, Callable, Dict

from api.conversation import VERIFIED, Conversation, Reply
from api.models import (
    DAILY_NOTIFICATION_ASKED,
    PUSH_NOTIFICATION_ASKED,
    RANDOM_CATEGORY,
)
from api.services.opt_in import OptInWorkflow
from api.services.replies import (
    category_filter,
    compose_tip_reply,
    compose_welcome,
    select_tip,
)
from api.services.storage import TipStore
from lib.error_handler import ErrorHandler

logger = logging.getLogger(__name__)

WELCOME_INTENT = 'Default Welcome Intent'
FALLBACK = "Sorry, I didn't get that. You can ask me for a tip."
NO_SCREEN = ("Hi! Welcome to Actions on Google Tips! To learn about user "
             "engagement you will need to switch to a screened device.")
NOT_VERIFIED = ("Hi! Welcome to Actions on Google Tips! To learn about user "
                "engagement you'll need to be a verified user.")

Handler = Callable[[Conversation], Awaitable[Reply]]

class IntentRouter:
    """Maps Dialogflow intent names to handlers"""

    def __init__(self, tip_store: TipStore, opt_in: OptInWorkflow, chooser: Callable = random.choice):
        self.tips = tip_store
        self.opt_in = opt_in
        self.chooser = chooser
        self.handlers: Dict[str, Handler] = {
            WELCOME_INTENT: self.welcome,
            'tell_tip': self.tell_tip,
            'tell_latest_tip': self.tell_latest_tip,
            'setup_push': self.setup_push,
            'finish_push_setup': self.finish_push_setup,
            'setup_update': self.setup_update,
            'finish_update_setup': self.finish_update_setup,
        }

    async def handle(self, conv: Conversation) -> Reply:
        handler = self.handlers.get(conv.intent)
        if handler is None:
            logger.warning(f"No handler for intent: {conv.intent!r}")
            return Reply(conv.user_storage).ask(FALLBACK)

        logger.info(f"Handling intent: {conv.intent}")
        try:
            return await handler(conv)
        except Exception as e:
            message = ErrorHandler.handle_intent_error(conv.intent, e)
            return Reply(conv.user_storage).close(message)

    async def welcome(self, conv: Conversation) -> Reply:
        # User engagement features aren't available on speaker-only devices
        if not conv.has_screen:
            return Reply(conv.user_storage).close(NO_SCREEN)
        if conv.verification != VERIFIED:
            return Reply(conv.user_storage).close(NOT_VERIFIED)

        categories = await self.tips.categories()
        return compose_welcome(categories, conv.user_storage)

    async def tell_tip(self, conv: Conversation) -> Reply:
        category = conv.parameter('category', RANDOM_CATEGORY)
        tips = await self.tips.find(category_filter(category))
        tip = select_tip(tips, self.chooser)
        return compose_tip_reply(tip, conv.user_storage, upsells=(DAILY_NOTIFICATION_ASKED,))

    async def tell_latest_tip(self, conv: Conversation) -> Reply:
        tip = await self.tips.latest()
        return compose_tip_reply(tip, conv.user_storage, upsells=(PUSH_NOTIFICATION_ASKED,))

    async def setup_push(self, conv: Conversation) -> Reply:
        return self.opt_in.request_push(conv.user_storage)

    async def finish_push_setup(self, conv: Conversation) -> Reply:
        return await self.opt_in.finish_push_setup(
            permission=conv.argument('PERMISSION') is True,
            user_id=conv.argument('UPDATES_USER_ID'),
            user_storage=conv.user_storage
        )

    async def setup_update(self, conv: Conversation) -> Reply:
        category = conv.parameter('category', RANDOM_CATEGORY)
        return self.opt_in.request_daily_updates(category, conv.user_storage)

    async def finish_update_setup(self, conv: Conversation) -> Reply:
        registered = conv.argument('REGISTER_UPDATE')
        if not isinstance(registered, dict):
            registered = None
        return self.opt_in.finish_update_setup(registered, conv.user_storage)
