"""Discount management: commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.discount.discount import Discount, normalize_code
from ordering.domain import ordering


@ordering.command(part_of="Discount")
class CreateDiscount:
    code = String(required=True, max_length=50)
    discount_type = String(required=True)
    value = Float(required=True)
    usage_limit = Integer()
    min_order_amount = Float(default=0.0)
    max_discount = Float()
    valid_from = DateTime()
    valid_until = DateTime()


@ordering.command(part_of="Discount")
class DeactivateDiscount:
    discount_id = Identifier(required=True)


@ordering.command_handler(part_of=Discount)
class ManageDiscountHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        repo = current_domain.repository_for(Discount)
        code = normalize_code(command.code)
        if repo._dao.query.filter(code=code).all().items:
            raise ValidationError({"code": [f"Discount code {code} already exists"]})

        discount = Discount.create(
            code=code,
            discount_type=command.discount_type,
            value=command.value,
            usage_limit=command.usage_limit,
            min_order_amount=command.min_order_amount,
            max_discount=command.max_discount,
            valid_from=command.valid_from,
            valid_until=command.valid_until,
        )
        repo.add(discount)
        return str(discount.id)

    @handle(DeactivateDiscount)
    def deactivate_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.deactivate()
        repo.add(discount)
