import re
from typing import Any, Dict, Mapping

from db.models import ShippingAddress
from utils import config
from utils.errors import ValidationError

# six digits, no leading zero
PIN_CODE_RE = re.compile(r"^[1-9][0-9]{5}$")

_ADDRESS_FIELDS = {
    "houseNo": "house_no",
    "street": "street",
    "city": "city",
    "state": "state",
    "postalCode": "postal_code",
}


def validate_address(form: Mapping[str, Any]) -> ShippingAddress:
    """
    Validate the checkout address form and return a ShippingAddress.

    Keys are the form's field names (houseNo, street, city, state, postalCode).
    All problems are collected and raised together as one ValidationError.
    """
    errors: Dict[str, str] = {}
    values: Dict[str, str] = {}
    for form_key, attr in _ADDRESS_FIELDS.items():
        raw = form.get(form_key)
        value = raw.strip() if isinstance(raw, str) else ""
        if not value:
            errors[form_key] = "Please fill in all shipping address fields."
        values[attr] = value

    if "state" not in errors and values["state"] not in config.VALID_STATES:
        errors["state"] = "Please enter a valid Indian state."

    if "postalCode" not in errors and not PIN_CODE_RE.match(values["postal_code"]):
        errors["postalCode"] = "Please enter a valid PIN code (6 digits)."

    if errors:
        raise ValidationError(errors)
    return ShippingAddress(**values)


def validate_payment_method(method: Any) -> str:
    if not isinstance(method, str) or method not in config.PAYMENT_METHODS:
        raise ValidationError(
            {"paymentMethod": f"Choose one of: {', '.join(config.PAYMENT_METHODS)}."}
        )
    return method
