from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base


class ContextualPrice(Base):
    """B2B price and quantity rule of one variant at one company location."""

    __tablename__ = "contextual_price"
    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(String(64), nullable=False)
    location_id = Column(String(64), ForeignKey("company_location.id"), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    min_quantity = Column(Integer, nullable=False, default=1)
    max_quantity = Column(Integer, nullable=True)
    increment = Column(Integer, nullable=True)

    __table_args__ = (Index("ix_ctxprice_variant_loc", "variant_id", "location_id", unique=True),)

    price_breaks = relationship(
        "PriceBreak",
        back_populates="contextual_price",
        cascade="all, delete-orphan",
        order_by="PriceBreak.minimum_quantity",
    )


class PriceBreak(Base):
    __tablename__ = "price_break"
    id = Column(Integer, primary_key=True, index=True)
    contextual_price_id = Column(Integer, ForeignKey("contextual_price.id"), nullable=False)
    minimum_quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    contextual_price = relationship("ContextualPrice", back_populates="price_breaks")


class PaymentTermsTemplate(Base):
    __tablename__ = "payment_terms_template"
    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(80), nullable=False)
    payment_terms_type = Column(String(20), nullable=False)  # NET | FIXED | RECEIPT
    due_in_days = Column(Integer, nullable=True)
