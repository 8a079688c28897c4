from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from ..db import Base


class Company(Base):
    __tablename__ = "company"
    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(120), nullable=False)

    locations = relationship(
        "CompanyLocation", back_populates="company", cascade="all, delete-orphan"
    )


class CompanyLocation(Base):
    __tablename__ = "company_location"
    id = Column(String(64), primary_key=True, index=True)
    company_id = Column(String(64), ForeignKey("company.id"), nullable=False)
    name = Column(String(120), nullable=False, default="")
    country = Column(String(2), nullable=False)  # ISO 3166-1 alpha-2
    province = Column(String(8), nullable=True)

    company = relationship("Company", back_populates="locations")
