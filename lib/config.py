from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()

PUSH_SCOPES = ['https://www.googleapis.com/auth/actions.fulfillment.conversation']

class Settings(BaseModel):
    # Supabase settings
    supabase_url: str = os.getenv('SUPABASE_URL', '')
    supabase_key: str = os.getenv('SUPABASE_KEY', '')
    tips_table: str = os.getenv('TIPS_TABLE', 'tips')
    users_table: str = os.getenv('USERS_TABLE', 'users')

    # Push notification settings
    service_account_json: str = os.getenv('SERVICE_ACCOUNT_JSON', 'service-account.json')
    push_endpoint: str = os.getenv('PUSH_ENDPOINT',
        'https://actions.googleapis.com/v2/conversations:send')
    push_in_sandbox: bool = os.getenv('PUSH_IN_SANDBOX', 'true').lower() in ('1', 'true', 'yes')
    push_notification_title: str = os.getenv('PUSH_NOTIFICATION_TITLE', 'AoG tips latest tip')

    # Seed data for /tips/restore
    tips_seed_path: str = os.getenv('TIPS_SEED_PATH',
        os.path.join(os.path.dirname(os.path.dirname(__file__)), 'data', 'tips_db.json'))

    log_level: str = os.getenv('LOG_LEVEL', 'INFO')

def get_settings() -> Settings:
    return Settings()
