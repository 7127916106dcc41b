from pydantic import BaseModel


class PaymentIntent(BaseModel):
    """A Razorpay order created for one bookstore order."""
    id: str
    amount: int  # paise
    currency: str
    receipt: str
    status: str = "created"


class Refund(BaseModel):
    id: str
    payment_id: str
    amount: int  # paise
    status: str = "processed"
