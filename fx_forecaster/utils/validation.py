"""Input validation utilities."""
from datetime import date

from fx_forecaster.utils.errors import ValidationError


def validate_currency_code(code: str) -> str:
    """Validate a 3-letter ISO currency code and return it upper-cased."""
    if not code or not isinstance(code, str):
        raise ValidationError(f"Invalid currency code: {code!r}")
    code = code.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(
            f"Invalid currency code: {code}. Expect 3-letter ISO code."
        )
    return code


def validate_currency_pair(pair: str) -> tuple[str, str]:
    """
    Validate and parse currency pair.
    
    Args:
        pair: Currency pair string (e.g., "USD/EUR", "USD-EUR", "USDEUR")
    
    Returns:
        Tuple of (base_currency, quote_currency)
    
    Raises:
        ValidationError: If pair format is invalid
    """
    pair = pair.strip().upper()

    base = quote = None
    for sep in ['/', '-', '_']:
        if sep in pair:
            parts = pair.split(sep)
            if len(parts) == 2:
                base, quote = parts
            break
    else:
        if len(pair) == 6:
            base, quote = pair[:3], pair[3:]

    if base is None or quote is None:
        raise ValidationError(f"Invalid currency pair format: {pair}")

    base = validate_currency_code(base)
    quote = validate_currency_code(quote)
    if base == quote:
        raise ValidationError("Base and quote currencies cannot be the same")
    return base, quote


def validate_date_range(start_date: date, end_date: date) -> tuple[date, date]:
    """Validate an inclusive calendar date range."""
    if start_date > end_date:
        raise ValidationError(
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )
    return start_date, end_date
