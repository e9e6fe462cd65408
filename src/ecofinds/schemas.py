"""Pydantic request bodies sent to the marketplace API."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .models import Condition, PaymentMethod, ShippingAddress


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class AddToCartRequest(_Body):
    product_id: str = Field(..., alias="productId")
    quantity: int = Field(default=1, ge=1)


class UpdateQuantityRequest(_Body):
    quantity: int = Field(..., ge=1)


class ShippingAddressSchema(_Body):
    street: str
    city: str
    state: str
    zip_code: str = Field(..., alias="zipCode")
    country: str

    @classmethod
    def from_model(cls, address: ShippingAddress) -> "ShippingAddressSchema":
        return cls(
            street=address.street,
            city=address.city,
            state=address.state,
            zip_code=address.zip_code,
            country=address.country,
        )


class CreateOrderRequest(_Body):
    shipping_address: ShippingAddressSchema = Field(..., alias="shippingAddress")
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASH_ON_DELIVERY, alias="paymentMethod"
    )


class ProductCreateRequest(_Body):
    """A validated listing draft, ready to post."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    condition: Condition = Condition.GOOD
    images: list[str] = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> int | float:
        # The API takes a JSON number; a typed price survives float repr exactly
        return int(price) if price == price.to_integral_value() else float(price)
