import logging
import os
from dotenv import load_dotenv

# === НАЛАШТУВАННЯ ЛОГУВАННЯ ===
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
)
logger = logging.getLogger(__name__)

# === ЗАВАНТАЖЕННЯ ЗМІННИХ СЕРЕДОВИЩА ===
load_dotenv()

TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
ADMIN_USER_ID: int = int(os.getenv("ADMIN_USER_ID", "0"))
REDIS_URL: str = os.getenv("REDIS_URL", "")

# Heroku віддає DATABASE_URL у форматі postgres://, SQLAlchemy його не приймає
DATABASE_URL: str = os.getenv("DATABASE_URL", "postgresql://localhost/reaction_speed")


def _with_driver(url: str, driver: str) -> str:
    """Підставляє драйвер у postgres-URL; інші схеми (sqlite+aiosqlite) не чіпає."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return f"postgresql+{driver}://" + url[len(prefix):]
    return url


ASYNC_DATABASE_URL: str = _with_driver(DATABASE_URL, "asyncpg")
SYNC_DATABASE_URL: str = _with_driver(DATABASE_URL, "psycopg2")

# === КОНСТАНТИ ===
LEADERBOARD_LIMIT: int = 100          # Скільки рядків тягнемо з БД
LEADERBOARD_DISPLAY_LIMIT: int = 10   # Скільки рядків показуємо в Telegram
HISTORY_PAGE_SIZE: int = 10
LEADERBOARD_CACHE_TTL: int = int(os.getenv("LEADERBOARD_CACHE_TTL", "60"))

# Вікові групи: ключ зберігається в БД, значення показується користувачу
AGE_RANGES: dict[str, str] = {
    "under_18": "До 18",
    "18_24": "18-24",
    "25_34": "25-34",
    "35_44": "35-44",
    "45_54": "45-54",
    "55_64": "55-64",
    "65_plus": "65+",
}


# === ПЕРЕВІРКА КРИТИЧНИХ ЗМІННИХ ===
if not TELEGRAM_BOT_TOKEN:
    logger.critical("❌ TELEGRAM_BOT_TOKEN повинен бути встановлений в .env файлі")
    raise RuntimeError("❌ Встанови TELEGRAM_BOT_TOKEN в .env файлі")

if not REDIS_URL:
    logger.info("REDIS_URL не задано: таблиця лідерів читатиметься напряму з БД.")
