from decimal import Decimal, ROUND_HALF_UP
from jobcard.models.ledger import InvoiceLedger
from jobcard.models.payment import Payment


def format_amount(value, decimals=2):
    if value is None:
        return None
    q = Decimal("0." + "0" * decimals)
    return str(Decimal(value).quantize(q, rounding=ROUND_HALF_UP))


def payment_summary(payment: Payment) -> dict:
    return {
        "id": str(payment.id),
        "payment_type": payment.payment_type.identifier,
        "payment_type_name": payment.payment_type.name,
        "amount": format_amount(payment.amount),
        "foreign_amount": format_amount(payment.foreign_amount),
        "exchange_rate": format_amount(payment.exchange_rate, decimals=4),
        "currency": payment.currency,
    }


def ledger_summary(ledger: InvoiceLedger) -> dict:
    return {
        "id": ledger.id,
        "currency": ledger.currency_code,
        "exchange_rate": format_amount(ledger.exchange_rate, decimals=4),
        "gross_amount": format_amount(ledger.gross_amount),
        "discount": format_amount(ledger.discount),
        "additional_discount": format_amount(ledger.additional_discount),
        "total_discount": format_amount(ledger.total_discount),
        "vat_policy": ledger.vat_policy.value,
        "vat_percentage": format_amount(ledger.vat_percentage),
        "net_amount": format_amount(ledger.net_amount),
        "vat_amount": format_amount(ledger.vat_amount),
        "net_amount_including_vat": format_amount(ledger.net_amount_including_vat),
        "total_paid": format_amount(ledger.total_paid),
        "remaining_amount": format_amount(ledger.remaining_amount),
        "settled": ledger.is_settled,
        "payments": [payment_summary(p) for p in ledger.payments],
    }
