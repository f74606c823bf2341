from flask import Flask, request, jsonify
from pydantic import ValidationError
import json
import logging
import sys

from api.conversation import Conversation, Reply
from api.intents import IntentRouter
from api.models import TipRecord, StoreEvent
from api.services.fanout import FanoutDispatcher
from api.services.opt_in import OptInWorkflow
from api.services.storage import ConsentStore, TipStore
from lib.config import get_settings
from lib.database import get_supabase
from lib.error_handler import APOLOGY
from lib.push_client import PushClient

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True
)

logger = logging.getLogger(__name__)

app = Flask(__name__)

logger.info("Initializing services...")
try:
    supabase = get_supabase()
    consent_store = ConsentStore(supabase, table=settings.users_table)
    tip_store = TipStore(supabase, table=settings.tips_table)
    push_client = PushClient(settings)

    opt_in = OptInWorkflow(consent_store)
    router = IntentRouter(tip_store, opt_in)
    fanout = FanoutDispatcher(
        consent_store,
        push_client,
        title=settings.push_notification_title
    )
    logger.info("All services initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize services: {str(e)}")
    raise

@app.route('/', methods=['GET'])
def root():
    """Basic health check"""
    return jsonify({'status': 'healthy'})

@app.route('/webhook', methods=['POST'])
async def webhook():
    """Dialogflow fulfillment for the tips assistant"""
    try:
        body = request.get_json(force=True, silent=True) or {}
        conv = Conversation.from_webhook(body)
        logger.info(f"Webhook received for intent: {conv.intent}")
        reply = await router.handle(conv)
        return jsonify(reply.to_webhook())
    except Exception as e:
        logger.error(f"Webhook error: {str(e)}", exc_info=True)
        return jsonify(Reply().close(APOLOGY).to_webhook())

@app.route('/tips/created', methods=['POST'])
async def tip_created():
    """Store trigger: a row was inserted into the tips table"""
    logger.info("Received tips table event")
    try:
        event = StoreEvent.model_validate(request.get_json(force=True, silent=True) or {})
        if not event.is_insert or event.table != settings.tips_table:
            logger.info(f"Ignoring {event.type} event on {event.table}")
            return jsonify({'status': 'ignored'})
        tip = TipRecord.model_validate(event.record or {})
    except ValidationError as e:
        logger.error(f"Invalid store event: {str(e)}")
        return jsonify({'status': 'error', 'message': 'Invalid store event'}), 400

    try:
        recipients = await fanout.dispatch(tip)
    except Exception as e:
        logger.error(f"Fanout failed: {str(e)}", exc_info=True)
        return jsonify({'status': 'error', 'message': str(e)}), 500

    return jsonify({'status': 'success', 'recipients': recipients})

@app.route('/tips/restore', methods=['POST'])
async def restore_tips():
    """Replace the tips table with the seed list"""
    try:
        with open(settings.tips_seed_path, encoding='utf-8') as f:
            tips = json.load(f)
        deleted = await tip_store.delete_all()
        inserted = await tip_store.insert_many(tips)
        logger.info(f"Restored tips DB: deleted {deleted}, inserted {inserted}")
        return 'Tips DB successfully restored', 200
    except Exception as e:
        logger.error(f"Error restoring tips DB: {str(e)}", exc_info=True)
        return jsonify({'status': 'error', 'message': str(e)}), 500
