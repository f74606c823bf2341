import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

from api.conversation import Card, Reply
from api.models import (
    DAILY_NOTIFICATION_ASKED,
    PUSH_NOTIFICATION_ASKED,
    RANDOM_CATEGORY,
    RECENT_TIP,
    TipRecord,
)

logger = logging.getLogger(__name__)

LEARN_MORE = 'Learn More!'
NO_TIPS = "Sorry, I couldn't find any tips for that right now. Try another category."

# Suggestion chip offered the first time each flag is unset
UPSELLS = {
    DAILY_NOTIFICATION_ASKED: 'Send daily',
    PUSH_NOTIFICATION_ASKED: 'Alert me of new tips',
}

def category_filter(category: Optional[str]) -> Optional[str]:
    """The category to filter the tip store by, or None for every tip"""
    if category == RANDOM_CATEGORY:
        return None
    return category

def select_tip(tips: Sequence[TipRecord], chooser: Callable = random.choice) -> Optional[TipRecord]:
    if not tips:
        return None
    return chooser(list(tips))

def compose_tip_reply(
    tip: Optional[TipRecord],
    user_storage: Dict[str, Any],
    upsells: Sequence[str] = (DAILY_NOTIFICATION_ASKED, PUSH_NOTIFICATION_ASKED)
) -> Reply:
    """Speak a tip, show it on a card and offer at most one upsell.

    ``upsells`` lists the storage flags to consider, in order. The first one
    not yet set in ``user_storage`` gets its chip and is set to True on the
    returned reply's storage, so it is never offered again. The input
    mapping is left untouched.
    """
    reply = Reply(user_storage)
    if tip is None:
        logger.warning("No tip available to compose a reply")
        return reply.ask(NO_TIPS)

    reply.ask(tip.tip)
    reply.card = Card(text=tip.tip, link_title=LEARN_MORE, link_url=tip.url)

    for flag in upsells:
        if not reply.user_storage.get(flag):
            reply.suggest(UPSELLS[flag])
            reply.user_storage[flag] = True
            break
    return reply

def compose_welcome(categories: List[str], user_storage: Optional[Dict[str, Any]] = None) -> Reply:
    spoken = [RECENT_TIP] + list(categories)
    reply = Reply(user_storage)
    reply.ask(
        "Hi! Welcome to Actions on Google Tips! I can offer you tips for "
        f"Actions on Google. You can pick a category from {', '.join(spoken)}, "
        "or I can tell you a tip from a randomly selected category."
    )
    return reply.suggest(*spoken, RANDOM_CATEGORY)
