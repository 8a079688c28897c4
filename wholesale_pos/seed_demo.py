from decimal import Decimal

from sqlalchemy.orm import Session

from .db import Base, SessionLocal, engine
from .models.catalog import ContextualPrice, PaymentTermsTemplate, PriceBreak
from .models.company import Company, CompanyLocation
from .models.customer import Customer
from .models import draft_order as _draft_order_models  # noqa: F401


def get_or_create(session: Session, model, defaults=None, **kwargs):
    inst = session.query(model).filter_by(**kwargs).first()
    if inst:
        return inst, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    inst = model(**params)
    session.add(inst)
    session.commit()
    session.refresh(inst)
    return inst, True


def seed(db: Session) -> dict:
    # Payment terms; "pt-2" is the first NET template and gets preselected
    get_or_create(db, PaymentTermsTemplate, id="pt-1", defaults={"name": "Due on receipt", "payment_terms_type": "RECEIPT"})
    get_or_create(db, PaymentTermsTemplate, id="pt-2", defaults={"name": "Net 30", "payment_terms_type": "NET", "due_in_days": 30})
    get_or_create(db, PaymentTermsTemplate, id="pt-3", defaults={"name": "Net 60", "payment_terms_type": "NET", "due_in_days": 60})

    get_or_create(db, Company, id="co-acme", defaults={"name": "Acme Salons"})
    get_or_create(
        db,
        CompanyLocation,
        id="loc-ca",
        defaults={"company_id": "co-acme", "name": "Acme Los Angeles", "country": "US", "province": "CA"},
    )
    get_or_create(db, Company, id="co-maple", defaults={"name": "Maple Beauty"})
    get_or_create(
        db,
        CompanyLocation,
        id="loc-bc",
        defaults={"company_id": "co-maple", "name": "Maple Vancouver", "country": "CA", "province": "BC"},
    )

    get_or_create(
        db,
        Customer,
        id="cust-1",
        defaults={"name": "Jane Buyer", "email": "jane@acme.test", "company_location_id": "loc-ca"},
    )
    get_or_create(
        db,
        Customer,
        id="cust-2",
        defaults={
            "name": "Maple Purchasing",
            "email": "orders@maple.test",
            "tax_exempt": True,
            "company_location_id": "loc-bc",
        },
    )

    shampoo, created = get_or_create(
        db,
        ContextualPrice,
        variant_id="var-shampoo",
        location_id="loc-ca",
        defaults={"price": Decimal("10.00"), "min_quantity": 6, "max_quantity": 120, "increment": 6},
    )
    if created:
        shampoo.price_breaks = [
            PriceBreak(minimum_quantity=24, price=Decimal("9.00")),
            PriceBreak(minimum_quantity=48, price=Decimal("8.50")),
        ]
        db.commit()
    get_or_create(
        db,
        ContextualPrice,
        variant_id="var-cond",
        location_id="loc-ca",
        defaults={"price": Decimal("12.50"), "min_quantity": 1},
    )
    return {"customers": ["cust-1", "cust-2"], "locations": ["loc-ca", "loc-bc"]}


def main():
    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    try:
        info = seed(db)
        print(f"Seed OK | customers={info['customers']} locations={info['locations']}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
