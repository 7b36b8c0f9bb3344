# app/models/promo_models.py
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, UniqueConstraint, func
from app.core.db import Base


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False)  # stored upper-cased
    percentage = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("percentage >= 1 AND percentage <= 100", name="check_promo_percentage_range"),
    )


class PromoUsage(Base):
    __tablename__ = "promo_usage"

    id = Column(Integer, primary_key=True, index=True)
    promo_code = Column(String(50), nullable=False)
    user_email = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("promo_code", "user_email", name="uq_promo_usage_code_email"),
    )
