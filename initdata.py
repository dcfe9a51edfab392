"""
Verification of the signed init data the chat client hands to the mini app.

The payload is a query string. Its ``hash`` field is an HMAC-SHA-256 over the
remaining fields, keyed with SHA-256(bot token), so only the platform that
knows the bot token can produce it.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from urllib.parse import parse_qsl, unquote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: int
    display_name: str


class SessionVerifier:
    def __init__(self, bot_token):
        # Without a bot token the key would be public; such a verifier rejects everything.
        self._secret = hashlib.sha256(bot_token.encode('utf-8')).digest() if bot_token else None

    def sign(self, pairs):
        """Hex HMAC of the canonical check string built from ``pairs``."""
        check_string = '\n'.join(f'{k}={v}' for k, v in sorted(pairs, key=lambda kv: kv[0]))
        return hmac.new(self._secret, check_string.encode('utf-8'), hashlib.sha256).hexdigest()

    def verify(self, init_data):
        """Return the AuthenticatedUser behind ``init_data`` or None."""
        if self._secret is None:
            logger.warning("Bot token is not configured; rejecting init data")
            return None
        if not init_data or not isinstance(init_data, str):
            return None

        pairs = parse_qsl(init_data, keep_blank_values=True)
        received = next((v for k, v in pairs if k == 'hash'), None)
        if not received:
            logger.debug("Init data has no hash field")
            return None

        fields = [(k, v) for k, v in pairs if k != 'hash']
        if not hmac.compare_digest(self.sign(fields).encode(), received.encode('utf-8')):
            logger.warning("Init data signature mismatch")
            return None

        raw_user = next((v for k, v in fields if k == 'user'), None)
        return parse_user(raw_user)


def parse_user(raw_user):
    if not raw_user:
        return None
    try:
        data = json.loads(unquote(raw_user))
    except ValueError:
        logger.debug("Init data user field is not valid JSON")
        return None

    if not isinstance(data, dict):
        return None
    user_id = data.get('id')
    # bool is an int subclass; reject it explicitly
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None
    return AuthenticatedUser(id=user_id, display_name=data.get('first_name') or '')
