import uuid

from sqlalchemy import Column, String

from shared.config.database import Base


class Address(Base):
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)
    phone = Column(String(20), nullable=False)
    street = Column(String, nullable=False)
    street2 = Column(String, nullable=True)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    pincode = Column(String(10), nullable=False)

    def snapshot(self) -> dict:
        """Denormalized copy stored on orders."""
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "street": self.street,
            "street2": self.street2 or "",
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
        }
