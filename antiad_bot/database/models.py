from sqlalchemy import Column, Integer, BigInteger, DateTime, Boolean
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# 🏠 Активированные группы
# Запись создаётся командой /addgroup. Нет записи - группа не защищается.
class GroupSettings(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    chat_id = Column(BigInteger, unique=True, nullable=False, index=True)
    # Ночной режим: с 22:00 до 09:00 сообщения молча удаляются
    night_mode = Column(Boolean, default=True, nullable=False)
    added_by = Column(BigInteger, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# 👤 Состояние доверия пользователя (общее для всех групп)
# NEW: profile_checked=False
# PROBATION: profile_checked=True, trusted=False
# TRUSTED: trusted=True
class UserTrustState(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, unique=True, nullable=False, index=True)
    message_count = Column(Integer, default=0, nullable=False)
    trusted = Column(Boolean, default=False, nullable=False)
    profile_checked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
