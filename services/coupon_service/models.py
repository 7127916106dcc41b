import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from shared.config.database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(64), unique=True, nullable=False, index=True)  # stored uppercase
    discount_percent = Column(Float, nullable=False)
    max_discount = Column(Float, nullable=False)
    min_order_value = Column(Float, nullable=False, default=0)
    usage_limit = Column(Integer, nullable=False)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    category_id = Column(String(36), nullable=True)
