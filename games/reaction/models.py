"""
Визначення моделей даних SQLAlchemy для гри на реакцію.
"""
from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    Float,
    ForeignKey,
    DateTime,
    Index,
)
from sqlalchemy.sql import func

# Імпортуємо декларативну базу з основного файлу моделей,
# щоб ці таблиці були частиною того ж самого Metadata.
from database.models import Base


class ReactionResult(Base):
    """
    Один завершений заїзд. Після створення не змінюється,
    видаляється лише явною дією власника.
    """
    __tablename__ = 'reaction_results'

    id = Column(Integer, primary_key=True)

    # ondelete="CASCADE": при видаленні гравця зникає і вся його історія.
    user_telegram_id = Column(
        BigInteger,
        ForeignKey('users.telegram_id', ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    reaction_time_ms = Column(Integer, nullable=False)
    taken_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('ix_reaction_results_user_taken', 'user_telegram_id', 'taken_at'),
    )

    def __repr__(self) -> str:
        return (
            f"<ReactionResult(id={self.id}, user_id={self.user_telegram_id}, "
            f"time_ms={self.reaction_time_ms})>"
        )


class UserStats(Base):
    """
    Агрегат по всій історії гравця. Завжди перераховується повністю
    з reaction_results, інкрементних оновлень немає.
    """
    __tablename__ = 'user_stats'

    user_telegram_id = Column(
        BigInteger,
        ForeignKey('users.telegram_id', ondelete="CASCADE"),
        primary_key=True
    )
    best_time = Column(Integer, nullable=True)
    worst_time = Column(Integer, nullable=True)
    average_time = Column(Float, nullable=True)
    total_tests = Column(Integer, nullable=False, default=0, server_default='0')
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Таблиця лідерів сортує саме за best_time
    __table_args__ = (
        Index('ix_user_stats_best_time', 'best_time'),
    )

    def __repr__(self) -> str:
        return (
            f"<UserStats(user_id={self.user_telegram_id}, "
            f"best={self.best_time}, tests={self.total_tests})>"
        )
