import hashlib
import hmac
import json
from unittest.mock import MagicMock
from urllib.parse import urlencode

import pytest

from app import create_app
from settings import Settings

BOT_TOKEN = '123456:TEST-TOKEN'
USER = {'id': 42, 'first_name': 'Alice', 'username': 'alice'}


def make_init_data(fields=None, bot_token=BOT_TOKEN, user=USER):
    """Build init data signed the way the chat platform signs it."""
    fields = dict(fields or {'auth_date': '1700000000', 'query_id': 'AAH1'})
    if user is not None:
        fields['user'] = user if isinstance(user, str) else json.dumps(user)
    check_string = '\n'.join(f'{k}={fields[k]}' for k in sorted(fields))
    secret = hashlib.sha256(bot_token.encode()).digest()
    fields['hash'] = hmac.new(secret, check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode(fields)


@pytest.fixture
def settings():
    return Settings(bot_token=BOT_TOKEN, supabase_url='https://db.example', supabase_key='key')


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def parser():
    return MagicMock()


@pytest.fixture
def client(settings, store, parser):
    app = create_app(settings, store=store, parser=parser)
    app.testing = True
    return app.test_client()


@pytest.fixture
def init_data():
    return make_init_data()
