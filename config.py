import logging
import os
from dotenv import load_dotenv

load_dotenv()

TG_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN')
PROXY_URL = os.getenv('PROXY_URL')

# Personal bot: when set, every other Telegram account is ignored
OWNER_ID = int(os.getenv('OWNER_ID')) if os.getenv('OWNER_ID') else None

GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')

DB_PATH = os.getenv('DB_PATH') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'moe.db')

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
