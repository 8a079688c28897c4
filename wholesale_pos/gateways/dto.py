from decimal import Decimal
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from wholesale_pos.core.errors import ParseError
from wholesale_pos.core.schemas import (
    Address,
    CompanyLocation,
    ContextualPrice,
    Customer,
    PaymentTermsTemplate,
    PriceBreak,
    QuantityRule,
    StoreTaxSettings,
)

T = TypeVar("T", bound=BaseModel)


class _DTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def parse_payload(model: Type[T], payload, operation: str) -> T:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise ParseError(operation, f"{where}: {first.get('msg')}") from e


class QuantityRuleDTO(_DTO):
    minimum: int = Field(default=1, ge=1)
    maximum: Optional[int] = Field(default=None, ge=1)
    increment: Optional[int] = Field(default=None, ge=1)


class PriceBreakDTO(_DTO):
    minimum_quantity: int = Field(alias="minimumQuantity", ge=1)
    price: Decimal = Field(ge=0)


class ContextualPricingDTO(_DTO):
    price: Decimal = Field(ge=0)
    quantity_rule: QuantityRuleDTO = Field(default_factory=QuantityRuleDTO, alias="quantityRule")
    price_breaks: List[PriceBreakDTO] = Field(default_factory=list, alias="priceBreaks")

    def to_domain(self, product_id: str, variant_id: str) -> ContextualPrice:
        rule = QuantityRule(
            product_id=product_id,
            min_quantity=self.quantity_rule.minimum,
            max_quantity=self.quantity_rule.maximum,
            increment=self.quantity_rule.increment,
            price_breaks=tuple(
                PriceBreak(minimum_quantity=b.minimum_quantity, price=b.price)
                for b in sorted(self.price_breaks, key=lambda b: b.minimum_quantity)
            ),
        )
        return ContextualPrice(product_id=product_id, variant_id=variant_id, price=self.price, rule=rule)


class StoreTaxSettingsDTO(_DTO):
    taxes_included: bool = Field(default=False, alias="taxesIncluded")
    tax_shipping: bool = Field(default=False, alias="taxShipping")
    country_code: str = Field(default="US", alias="countryCode")

    def to_domain(self) -> StoreTaxSettings:
        return StoreTaxSettings(
            taxes_included=self.taxes_included,
            tax_shipping=self.tax_shipping,
            country_code=self.country_code,
        )


class CustomerDTO(_DTO):
    id: str
    name: str
    email: Optional[str] = None

    def to_domain(self) -> Customer:
        return Customer(id=self.id, name=self.name, email=self.email)


class AddressDTO(_DTO):
    country: str
    province: Optional[str] = None


class CompanyLocationDTO(_DTO):
    location_id: str = Field(alias="locationId")
    company_id: str = Field(alias="companyId")
    name: str = ""
    company_name: str = Field(default="", alias="companyName")
    address: AddressDTO

    def to_domain(self) -> CompanyLocation:
        return CompanyLocation(
            location_id=self.location_id,
            company_id=self.company_id,
            name=self.name,
            company_name=self.company_name,
            address=Address(country=self.address.country, province=self.address.province),
        )


class PaymentTermsTemplateDTO(_DTO):
    id: str
    name: str = ""
    payment_terms_type: str = Field(alias="paymentTermsType")
    due_in_days: Optional[int] = Field(default=None, alias="dueInDays")

    def to_domain(self) -> PaymentTermsTemplate:
        return PaymentTermsTemplate(
            id=self.id,
            name=self.name,
            payment_terms_type=self.payment_terms_type,
            due_in_days=self.due_in_days,
        )


class PaymentTermsDTO(_DTO):
    id: str
    payment_terms_type: str = Field(alias="paymentTermsType")
    payment_terms_name: Optional[str] = Field(default=None, alias="paymentTermsName")
    due_in_days: Optional[int] = Field(default=None, alias="dueInDays")


class DraftOrderCreatedDTO(_DTO):
    id: str
    name: str


class CompletedOrderDTO(_DTO):
    order_id: str = Field(alias="orderId")
