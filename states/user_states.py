"""
Визначення станів FSM для процесів, пов'язаних з користувачем.
"""
from aiogram.fsm.state import StatesGroup, State


class RegistrationFSM(StatesGroup):
    """
    Стани для покрокової реєстрації та оновлення профілю гравця.
    """
    # Початкова реєстрація та зміна нікнейму
    waiting_for_nickname = State()
    waiting_for_age_range = State()

    # Видалення
    confirming_deletion = State()
