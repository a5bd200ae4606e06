"""
utils/formatter.py

Дрібні форматери для повідомлень бота: мілісекунди, дати, вікові групи.
"""
import html
from datetime import datetime

from config import AGE_RANGES

NO_VALUE = "---"


def format_ms(value: float | None) -> str:
    """150 -> '150 мс'; дробове середнє округлюється; None -> '--- мс'."""
    if value is None:
        return f"{NO_VALUE} мс"
    return f"{round(value)} мс"


def format_age_range(age_range: str | None) -> str:
    if not age_range:
        return "Не вказано"
    return AGE_RANGES.get(age_range, age_range.replace("_", "-").replace("plus", "+"))


def format_taken_at(taken_at: datetime | str | None) -> str:
    if taken_at is None:
        return NO_VALUE
    if isinstance(taken_at, str):
        taken_at = datetime.fromisoformat(taken_at)
    return taken_at.strftime("%d.%m.%Y %H:%M")


def safe_nickname(nickname: str | None) -> str:
    return html.escape(nickname) if nickname else "Анонім"
