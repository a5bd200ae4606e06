"""
Винятки гри на реакцію.

Ієрархія повторює те, як помилки показуються гравцю:
- UserInputError: інструкція ("зарано"), заїзд скидається;
- PersistenceError: попередження, результат на екрані лишається;
- DataUnavailableError: звичайний порожній стан ("ще немає даних").
"""


class ReactionError(Exception):
    """Базовий виняток гри на реакцію."""


class UserInputError(ReactionError):
    """Некоректна дія гравця. Не фатальна."""


class FalseStartError(UserInputError):
    """Натискання до того, як усі вогні згасли."""

    def __init__(self, message: str = "Clicked too early: wait for all lights to go out."):
        super().__init__(message)


class PersistenceError(ReactionError):
    """Збій запису/читання у сховищі результатів."""


class DataUnavailableError(ReactionError):
    """Статистики або даних суперників ще немає."""
