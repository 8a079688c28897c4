from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from ..db import Base


class Customer(Base):
    __tablename__ = "customer"
    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(120), nullable=True)
    tax_exempt = Column(Boolean, default=False, nullable=False)
    company_location_id = Column(String(64), ForeignKey("company_location.id"), nullable=True)

    company_location = relationship("CompanyLocation")
