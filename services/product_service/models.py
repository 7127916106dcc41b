import uuid

from sqlalchemy import Column, Float, Integer, String

from shared.config.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    discounted_price = Column(Float, nullable=True)
    ebook_price = Column(Float, nullable=True)
    ebook_discounted = Column(Float, nullable=True)
    # Physical copies only; ebooks are never stock-limited
    stock = Column(Integer, nullable=False, default=0)
    category_id = Column(String(36), nullable=True, index=True)
