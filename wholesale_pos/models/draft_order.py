from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base


class DraftOrder(Base):
    __tablename__ = "draft_order"
    id = Column(Integer, primary_key=True)
    customer_id = Column(String(64), ForeignKey("customer.id"), nullable=True)
    company_location_id = Column(String(64), ForeignKey("company_location.id"), nullable=True)
    email = Column(String(120))
    po_number = Column(String(20))
    note = Column(String)
    tags = Column(String)  # comma separated
    tax_exempt = Column(Boolean, default=False)
    payment_terms_template_id = Column(String(64), ForeignKey("payment_terms_template.id"))
    status = Column(String, default="open")  # open | completed
    order_id = Column(String(64), unique=True, index=True)
    fulfilled = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
    fulfilled_at = Column(DateTime)

    lines = relationship(
        "DraftOrderLine",
        back_populates="draft_order",
        cascade="all, delete-orphan",
        order_by="DraftOrderLine.position",
    )
    attributes = relationship(
        "DraftOrderAttribute", back_populates="draft_order", cascade="all, delete-orphan"
    )
    payment_terms_template = relationship("PaymentTermsTemplate")

    @property
    def name(self) -> str:
        return f"#D{self.id}"


class DraftOrderLine(Base):
    __tablename__ = "draft_order_line"
    id = Column(Integer, primary_key=True)
    draft_order_id = Column(Integer, ForeignKey("draft_order.id"), nullable=False)
    position = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    draft_order = relationship("DraftOrder", back_populates="lines")
    attributes = relationship(
        "DraftOrderLineAttribute", back_populates="line", cascade="all, delete-orphan"
    )


class DraftOrderLineAttribute(Base):
    __tablename__ = "draft_order_line_attribute"
    id = Column(Integer, primary_key=True)
    line_id = Column(Integer, ForeignKey("draft_order_line.id"), nullable=False)
    key = Column(String, nullable=False)
    value = Column(String)

    line = relationship("DraftOrderLine", back_populates="attributes")


class DraftOrderAttribute(Base):
    __tablename__ = "draft_order_attribute"
    id = Column(Integer, primary_key=True)
    draft_order_id = Column(Integer, ForeignKey("draft_order.id"), nullable=False)
    key = Column(String, nullable=False)
    value = Column(String)

    draft_order = relationship("DraftOrder", back_populates="attributes")
