"""
Визначення моделей даних SQLAlchemy для бази даних.
Тут живе декларативна база та профіль гравця; таблиці гри на реакцію
описані в games/reaction/models.py.
"""
from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    BigInteger,
    String,
    DateTime,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from config import SYNC_DATABASE_URL

Base = declarative_base()


class User(Base):
    """
    Модель, що представляє зареєстрованого гравця.
    Telegram ID замінює окрему автентифікацію.
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False, index=True)
    nickname = Column(String(100), nullable=False)
    # Ключ з config.AGE_RANGES або NULL, якщо гравець не вказав вік
    age_range = Column(String(16), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return (
            f"<User(telegram_id={self.telegram_id}, "
            f"nickname='{self.nickname}', age_range={self.age_range})>"
        )

# Імпортуємо моделі з інших модулів, щоб Base.metadata.create_all знав про них.
import games.reaction.models  # noqa: E402,F401


if __name__ == '__main__':
    # При прямому запуску створює/оновлює таблиці в БД
    engine = create_engine(SYNC_DATABASE_URL)
    Base.metadata.create_all(engine)
    print("Таблиці 'users', 'reaction_results' та 'user_stats' успішно створено або оновлено.")
