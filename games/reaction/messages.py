"""
Централізоване сховище текстових повідомлень для гри на реакцію.
Це дозволяє легко змінювати тексти та підтримувати локалізацію,
не торкаючись логіки обробників.
"""
from typing import Any, Dict, List, Sequence

from games.reaction.logic import Phase, ReactionRecord
from games.reaction.stats import (
    PercentileResult,
    SavedResult,
    StatsSummary,
    consistency_label,
    performance_class,
    summary_tier,
)
from utils.formatter import format_age_range, format_ms, format_taken_at, safe_nickname

# Константи для візуалізації вогнів
LIGHT_ON = "🔴"
LIGHT_OFF = "⚫️"
SEPARATOR = " "

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}
PERFORMANCE_BADGES = {
    "best": "🏆",
    "good": "🟢",
    "average": "⚪️",
    "poor": "🟠",
    "worst": "🔻",
}

# === ЗАГАЛЬНІ ПОВІДОМЛЕННЯ ===
MSG_GAME_TITLE = "<b>🏁 Тест реакції</b>"
MSG_INTRO = (
    f"{MSG_GAME_TITLE}\n\n"
    "Як на старті Формули-1: п'ять вогнів запалюються по одному, "
    "а потім гаснуть разом. Щойно всі згаснуть, тисни кнопку якомога швидше!\n\n"
    "Проходь тест ще, щоб покращити середнє та піднятися в таблиці лідерів."
)
MSG_ERROR_NO_MESSAGE = "Помилка: не вдалося отримати повідомлення."
MSG_ERROR_NOT_REGISTERED = "Будь ласка, спочатку зареєструйтесь за допомогою команди /profile"
MSG_PREPARE = "Приготуйся..."
MSG_TOO_EARLY = "Зарано!"
MSG_GAME_OVER = "Гра вже закінчилась або неактивна."
MSG_FALSE_START = (
    "<b>Фальстарт!</b>\n\n"
    "Ви натиснули занадто рано. Дочекайтесь, поки згаснуть усі вогні."
)
MSG_SAVING = "<i>⏳ Зберігаю результат...</i>"
MSG_SAVE_FAILED = "⚠️ Не вдалося зберегти результат. Він не потрапить до статистики."
MSG_DB_UNAVAILABLE = "⚠️ Сховище результатів тимчасово недоступне. Спробуйте пізніше."
MSG_NO_DATA = "Ще немає даних. Пройдіть перший тест!"
MSG_DELETE_CONFIRM = (
    "<b>Видалити результат?</b>\n\n"
    "Цю дію не можна скасувати, статистику буде перераховано."
)
MSG_DELETED = "🗑 Результат видалено, статистику перераховано."
MSG_NOT_DELETED = "Результат вже видалено."


# === ІГРОВИЙ ПРОЦЕС ===
def get_lights_bar(lights: Sequence[bool]) -> str:
    return SEPARATOR.join(LIGHT_ON if is_on else LIGHT_OFF for is_on in lights)


def get_lights_text(phase: Phase, lights: Sequence[bool]) -> str:
    bar = get_lights_bar(lights)
    if phase is Phase.ARMED:
        return f"{MSG_GAME_TITLE}\n\n{bar}\n\n<b>ТИСНИ!</b>"
    return f"{MSG_GAME_TITLE}\n\n{bar}\n\nЧекай, поки згаснуть усі вогні..."


def get_result_text(time_ms: int, label: str, footer: str = "") -> str:
    text = (
        f"{MSG_GAME_TITLE}\n\n"
        f"<b>Ваш результат: {time_ms} мс</b>\n"
        f"<i>{label}</i>"
    )
    if footer:
        text += f"\n\n{footer}"
    return text


def get_saved_footer(saved: SavedResult) -> str:
    summary = saved.summary
    if saved.is_new_best:
        return f"🚀 Новий особистий рекорд! Тестів пройдено: {summary.count}"
    if saved.ties_best:
        return f"🎯 Повторили особистий рекорд ({format_ms(summary.best)}) · тестів: {summary.count}"
    return f"Особистий рекорд: {format_ms(summary.best)} · тестів: {summary.count}"


def get_user_time_answer(time_ms: int) -> str:
    return f"Ваш час: {time_ms} мс"


# === СТАТИСТИКА ===
def get_stats_text(summary: StatsSummary, peer: PercentileResult | None, age_range: str | None) -> str:
    if summary.is_empty:
        return f"<b>📊 Ваша статистика</b>\n\n{MSG_NO_DATA}"

    lines = [
        "<b>📊 Ваша статистика</b>",
        "",
        f"🏆 Найкращий час: <b>{format_ms(summary.best)}</b>",
        f"🐢 Найгірший час: {format_ms(summary.worst)}",
        f"⏱ Середній час: {format_ms(summary.average)} ({summary_tier(summary)})",
        f"🔁 Тестів пройдено: {summary.count}",
        f"📏 Стабільність: {consistency_label(summary.consistency)} "
        f"(розкид {summary.consistency} мс)",
        "",
    ]
    group = format_age_range(age_range) if age_range else "усі гравці"
    if peer is None:
        lines.append(f"👥 Порівняння ({group}): поки що не з ким порівнювати.")
    else:
        lines.append(
            f"👥 Ви швидші за <b>{peer.rank}%</b> гравців ({group}, "
            f"їх {peer.peer_count}, середній рекорд {format_ms(peer.peer_average)})"
        )
    return "\n".join(lines)


# === ІСТОРІЯ ===
def get_history_text(
    records: List[ReactionRecord],
    total: int,
    all_times: Sequence[int] | None = None,
) -> str:
    """
    records: показана сторінка (найновіші спочатку).
    all_times: усі часи гравця; значки best/worst рахуються відносно всієї історії.
    """
    if not records:
        return f"<b>📜 Історія тестів</b>\n\n{MSG_NO_DATA}"

    if not all_times:
        all_times = [record.duration_ms for record in records]
    lines = [f"<b>📜 Історія тестів</b> (останні {len(records)} з {total})", ""]
    for position, record in enumerate(records):
        badge = PERFORMANCE_BADGES[performance_class(record.duration_ms, all_times)]
        lines.append(
            f"{total - position}. {badge} <b>{record.duration_ms} мс</b> · "
            f"{format_taken_at(record.captured_at)}"
        )
    return "\n".join(lines)


# === ТАБЛИЦЯ ЛІДЕРІВ ===
def get_leaderboard_text(
    leaderboard_data: List[Dict[str, Any]],
    user_id: int,
    age_range: str | None = None,
    limit: int = 10,
) -> str:
    scope = f"вікова група {format_age_range(age_range)}" if age_range else "глобальна"
    if not leaderboard_data:
        return f"<b>🏆 Таблиця лідерів ({scope}) порожня.</b>\n\nСтаньте першим!"

    lines = [f"<b>🏆 Таблиця лідерів ({scope}):</b>"]
    for record in leaderboard_data[:limit]:
        is_current_user = "👉" if record["telegram_id"] == user_id else "  "
        medal = MEDALS.get(record["rank"], f"{record['rank']}.")
        lines.append(
            f"{is_current_user}{medal} {safe_nickname(record['nickname'])} - "
            f"<b>{record['best_time']} мс</b> ({record['total_tests']} тест.)"
        )

    own = next((r for r in leaderboard_data if r["telegram_id"] == user_id), None)
    if own is not None and own["rank"] > limit:
        lines.append("...")
        lines.append(f"👉{own['rank']}. {safe_nickname(own['nickname'])} - <b>{own['best_time']} мс</b>")
    return "\n".join(lines)
