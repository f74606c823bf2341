import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from lib.config import PUSH_SCOPES, Settings, get_settings
from lib.error_handler import PushAuthError, PushDeliveryError

logger = logging.getLogger(__name__)

class PushClient:
    """Sends Actions on Google push notifications with a service account token"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.endpoint = self.settings.push_endpoint

    def session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession()

    async def authenticate(self) -> str:
        """Exchange the service account key for a bearer token."""
        try:
            # google-auth refreshes synchronously, keep it off the event loop
            loop = asyncio.get_running_loop()
            token = await loop.run_in_executor(None, self._fetch_token)
        except Exception as e:
            logger.error(f"Auth error: {str(e)}")
            raise PushAuthError(f"Auth error: {str(e)}")
        if not token:
            raise PushAuthError("Auth error: no access token returned")
        return token

    def _fetch_token(self) -> str:
        credentials = service_account.Credentials.from_service_account_file(
            self.settings.service_account_json,
            scopes=PUSH_SCOPES
        )
        credentials.refresh(Request())
        return credentials.token

    async def send(self, session: aiohttp.ClientSession, token: str, notification: Dict[str, Any]) -> int:
        """Post one notification and return the HTTP status"""
        user_id = notification.get('target', {}).get('userId')
        body = {
            'customPushMessage': notification,
            'isInSandbox': self.settings.push_in_sandbox
        }
        try:
            async with session.post(
                self.endpoint,
                json=body,
                headers={'Authorization': f'Bearer {token}'}
            ) as response:
                text = await response.text()
                logger.info(f"{response.status}: {response.reason}")
                logger.info(text)
                if response.status >= 300:
                    raise PushDeliveryError(
                        f"Push API returned {response.status}: {text}",
                        user_id=user_id,
                        status_code=response.status
                    )
                return response.status
        except aiohttp.ClientError as e:
            raise PushDeliveryError(f"API request error: {str(e)}", user_id=user_id)
