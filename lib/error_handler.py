from typing import Optional
import logging

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, something went wrong on my end. Please try again later."

class AppError(Exception):
    def __init__(self, message: str, status_code: int = 500, user_message: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.user_message = user_message or APOLOGY
        super().__init__(self.message)

class StoreError(AppError):
    """A document store query or write failed"""

class PushAuthError(AppError):
    """The push delivery credential could not be obtained"""

class PushDeliveryError(AppError):
    """A single push notification could not be delivered"""
    def __init__(self, message: str, user_id: Optional[str] = None, status_code: int = 502):
        self.user_id = user_id
        super().__init__(message, status_code=status_code)

class ErrorHandler:
    @staticmethod
    def handle_intent_error(intent: str, error: Exception) -> str:
        logger.error(f"Intent '{intent}' failed: {str(error)}", exc_info=error)
        if isinstance(error, AppError):
            return error.user_message
        return APOLOGY

    @staticmethod
    def handle_delivery_error(user_id: str, error: Exception) -> None:
        logger.error(f"Push delivery to {user_id} failed: {str(error)}")
