"""
GST calculation engine.

Rules:
- supplier state == place of supply → intra-state → CGST + SGST (half each)
- supplier state != place of supply → inter-state → IGST (full)

Every intermediate amount is rounded half-up to paise, so stored
line values add up to the stored document totals exactly.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, NamedTuple, Optional

from django.core.exceptions import ValidationError

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
PAISE = Decimal("0.01")

# Standard slabs plus the special rates for precious stones / gold
GST_RATES = (
    Decimal("0"), Decimal("0.1"), Decimal("0.25"), Decimal("3"),
    Decimal("5"), Decimal("12"), Decimal("18"), Decimal("28"),
)
DISCOUNT_TYPES = ("percentage", "fixed")


class LineCalc(NamedTuple):
    amount: Decimal           # qty * rate
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    line_total: Decimal


class DocumentTotals(NamedTuple):
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    total_amount: Decimal


def to_decimal(value, field="value") -> Decimal:
    """Coerce int/float/str/Decimal to Decimal (floats go through str)."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")


def round2(value) -> Decimal:
    return to_decimal(value).quantize(PAISE, rounding=ROUND_HALF_UP)


def is_inter_state(supplier_state_code: Optional[str], customer_state_code: Optional[str]) -> bool:
    """Inter-state only when both codes are known and differ."""
    if not supplier_state_code or not customer_state_code:
        return False
    return supplier_state_code != customer_state_code


def validate_line(quantity, rate, gst_rate, discount_type=None, discount_value=None):
    quantity = to_decimal(quantity, "quantity")
    rate = to_decimal(rate, "rate")
    gst_rate = to_decimal(gst_rate, "gst_rate")

    if quantity < 0:
        raise ValidationError("Quantity must be >= 0")
    if rate < 0:
        raise ValidationError("Rate must be >= 0")
    if gst_rate not in GST_RATES:
        raise ValidationError(f"Unknown GST rate {gst_rate}%")

    if discount_type is not None and discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"Unknown discount type {discount_type!r}")
    if discount_type and discount_value is not None:
        discount_value = to_decimal(discount_value, "discount_value")
        if discount_value < 0:
            raise ValidationError("Discount must be >= 0")
        if discount_type == "percentage" and discount_value > HUNDRED:
            raise ValidationError("Percentage discount cannot exceed 100")
    return quantity, rate, gst_rate, discount_value


def calc_line_item(
    quantity,
    rate,
    gst_rate,
    discount_type: Optional[str] = None,
    discount_value=None,
    is_inter_state: bool = False,
) -> LineCalc:
    """Calculate GST for a single line item."""
    quantity, rate, gst_rate, discount_value = validate_line(
        quantity, rate, gst_rate, discount_type, discount_value)

    amount = round2(quantity * rate)

    discount_amount = ZERO
    if discount_type == "percentage" and discount_value:
        discount_amount = round2(amount * discount_value / HUNDRED)
    elif discount_type == "fixed" and discount_value:
        discount_amount = round2(discount_value)

    if discount_amount > amount:
        raise ValidationError(
            f"Discount {discount_amount} exceeds line amount {amount}")

    taxable_amount = round2(amount - discount_amount)
    gst_amount = round2(taxable_amount * gst_rate / HUNDRED)

    cgst_amount = sgst_amount = igst_amount = ZERO
    if is_inter_state:
        igst_amount = gst_amount
    else:
        cgst_amount = round2(gst_amount / 2)
        # SGST takes the odd paisa so the halves add up exactly
        sgst_amount = round2(gst_amount - cgst_amount)

    line_total = round2(taxable_amount + gst_amount)

    return LineCalc(
        amount=amount,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        igst_amount=igst_amount,
        line_total=line_total,
    )


def calc_document_totals(lines: Iterable[LineCalc]) -> DocumentTotals:
    """Sum already-rounded line values; only the grand total is re-rounded."""
    lines = list(lines)

    def total(attr):
        return sum((getattr(line, attr) for line in lines), ZERO)

    taxable_amount = total("taxable_amount")
    cgst_amount = total("cgst_amount")
    sgst_amount = total("sgst_amount")
    igst_amount = total("igst_amount")

    return DocumentTotals(
        subtotal=total("amount"),
        discount_amount=total("discount_amount"),
        taxable_amount=taxable_amount,
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        igst_amount=igst_amount,
        total_amount=round2(taxable_amount + cgst_amount + sgst_amount + igst_amount),
    )
