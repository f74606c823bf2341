"""Parsing of Dialogflow fulfillment requests and building of replies.

Requests and responses follow the Dialogflow v2 webhook format with an
Actions on Google payload under ``originalDetectIntentRequest.payload`` and
``payload.google``.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SCREEN_OUTPUT = 'actions.capability.SCREEN_OUTPUT'
VERIFIED = 'VERIFIED'

PERMISSION_INTENT = 'actions.intent.PERMISSION'
REGISTER_UPDATE_INTENT = 'actions.intent.REGISTER_UPDATE'
PERMISSION_SPEC_TYPE = 'type.googleapis.com/google.actions.v2.PermissionValueSpec'
REGISTER_UPDATE_SPEC_TYPE = 'type.googleapis.com/google.actions.v2.RegisterUpdateValueSpec'

class Conversation:
    """One fulfillment request: intent, parameters and the user's stored flags"""

    def __init__(
        self,
        intent: str,
        parameters: Optional[Dict[str, Any]] = None,
        arguments: Optional[Dict[str, Any]] = None,
        user_storage: Optional[Dict[str, Any]] = None,
        has_screen: bool = True,
        verification: str = VERIFIED
    ):
        self.intent = intent
        self.parameters = parameters or {}
        self.arguments = arguments or {}
        self.user_storage = dict(user_storage or {})
        self.has_screen = has_screen
        self.verification = verification

    @classmethod
    def from_webhook(cls, body: Dict[str, Any]) -> 'Conversation':
        query_result = body.get('queryResult') or {}
        payload = (body.get('originalDetectIntentRequest') or {}).get('payload') or {}
        user = payload.get('user') or {}
        capabilities = (payload.get('surface') or {}).get('capabilities') or []

        return cls(
            intent=(query_result.get('intent') or {}).get('displayName', ''),
            parameters=query_result.get('parameters') or {},
            arguments=_parse_arguments(payload.get('inputs') or []),
            user_storage=_parse_user_storage(user.get('userStorage')),
            has_screen=any(c.get('name') == SCREEN_OUTPUT for c in capabilities),
            verification=user.get('userVerificationStatus', VERIFIED)
        )

    def parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)

    def argument(self, name: str, default: Any = None) -> Any:
        return self.arguments.get(name, default)

def _parse_arguments(inputs: List[Dict[str, Any]]) -> Dict[str, Any]:
    arguments = {}
    for conv_input in inputs:
        for arg in conv_input.get('arguments') or []:
            name = arg.get('name')
            if not name:
                continue
            if 'boolValue' in arg:
                arguments[name] = arg['boolValue']
            elif 'textValue' in arg:
                arguments[name] = arg['textValue']
            elif 'extension' in arg:
                arguments[name] = arg['extension']
            elif 'structuredValue' in arg:
                arguments[name] = arg['structuredValue']
            else:
                arguments[name] = arg.get('rawText')
    return arguments

def _parse_user_storage(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        stored = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unreadable user storage: {raw!r}")
        return {}
    data = stored.get('data') if isinstance(stored, dict) else None
    return data if isinstance(data, dict) else {}

class Card(BaseModel):
    text: str
    link_title: str
    link_url: str

class Reply:
    """What the assistant says back, plus any platform prompt it issues"""

    def __init__(self, user_storage: Optional[Dict[str, Any]] = None):
        self.speech: List[str] = []
        self.card: Optional[Card] = None
        self.suggestions: List[str] = []
        self.system_intent: Optional[Dict[str, Any]] = None
        self.expect_user_response = True
        self.user_storage = dict(user_storage or {})

    def ask(self, text: str) -> 'Reply':
        self.speech.append(text)
        return self

    def close(self, text: str) -> 'Reply':
        self.speech.append(text)
        self.expect_user_response = False
        return self

    def suggest(self, *titles: str) -> 'Reply':
        self.suggestions.extend(titles)
        return self

    def request_permission(self, intent: str) -> 'Reply':
        """Ask the platform for permission to send push updates for intent"""
        self.system_intent = {
            'intent': PERMISSION_INTENT,
            'data': {
                '@type': PERMISSION_SPEC_TYPE,
                'permissions': ['UPDATE'],
                'updatePermissionValueSpec': {'intent': intent}
            }
        }
        return self

    def register_update(self, intent: str, arguments: List[Dict[str, Any]], frequency: str = 'DAILY') -> 'Reply':
        self.system_intent = {
            'intent': REGISTER_UPDATE_INTENT,
            'data': {
                '@type': REGISTER_UPDATE_SPEC_TYPE,
                'intent': intent,
                'arguments': arguments,
                'triggerContext': {'timeContext': {'frequency': frequency}}
            }
        }
        return self

    @property
    def permission_intent(self) -> Optional[str]:
        if not self.system_intent or self.system_intent['intent'] != PERMISSION_INTENT:
            return None
        return self.system_intent['data']['updatePermissionValueSpec']['intent']

    def to_webhook(self) -> Dict[str, Any]:
        items: List[Dict[str, Any]] = [
            {'simpleResponse': {'textToSpeech': text}} for text in self.speech
        ]
        if not items and self.system_intent:
            # Actions on Google requires a simple response alongside a helper intent
            items.append({'simpleResponse': {'textToSpeech': 'PLACEHOLDER'}})
        if self.card:
            items.append({'basicCard': {
                'formattedText': self.card.text,
                'buttons': [{
                    'title': self.card.link_title,
                    'openUrlAction': {'url': self.card.link_url}
                }]
            }})

        google: Dict[str, Any] = {
            'expectUserResponse': self.expect_user_response,
            'richResponse': {'items': items},
            'userStorage': json.dumps({'data': self.user_storage})
        }
        if self.suggestions:
            google['richResponse']['suggestions'] = [{'title': t} for t in self.suggestions]
        if self.system_intent:
            google['systemIntent'] = self.system_intent
        return {'payload': {'google': google}}
