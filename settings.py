"""
Runtime configuration for the wishlist backend.

Values come from the environment (optionally a .env file next to the app).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible; WishlistBot/1.0)'
DEFAULT_WB_API_URL = 'https://card.wb.ru/cards/detail'

REQUIRED = ('BOT_TOKEN', 'SUPABASE_URL', 'SUPABASE_KEY')


@dataclass(frozen=True)
class Settings:
    """Immutable settings shared by the verifier, fetcher and store client."""

    bot_token: str = ''
    supabase_url: str = ''
    supabase_key: str = ''
    port: int = 3000
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = 'INFO'
    wb_api_url: str = DEFAULT_WB_API_URL

    @classmethod
    def from_env(cls, env_file=None):
        load_dotenv(env_file or Path(__file__).parent / '.env')
        return cls(
            bot_token=os.getenv('BOT_TOKEN', ''),
            supabase_url=os.getenv('SUPABASE_URL', '').rstrip('/'),
            supabase_key=os.getenv('SUPABASE_KEY', ''),
            port=int(os.getenv('PORT', '3000')),
            user_agent=os.getenv('BOT_USER_AGENT', DEFAULT_USER_AGENT),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            wb_api_url=os.getenv('WB_API_URL', DEFAULT_WB_API_URL),
        )

    def missing(self):
        """Names of required variables that are not set."""
        values = {
            'BOT_TOKEN': self.bot_token,
            'SUPABASE_URL': self.supabase_url,
            'SUPABASE_KEY': self.supabase_key,
        }
        return [name for name in REQUIRED if not values[name]]
