"""
Date and number normalization for spreadsheet cell values.

Spreadsheet dates are stored as day-count serials; numbers may arrive as
ints, floats or text depending on how the cell was typed.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from services.exceptions import InvalidNumericValueError

# Days between the spreadsheet epoch (1899-12-30) and the Unix epoch
SERIAL_UNIX_OFFSET = 25569
SECONDS_PER_DAY = 86400


def to_decimal(value, field: str = 'value') -> Decimal:
    """
    Coerce a cell value to ``Decimal``.

    Accepts ints, floats, Decimals and numeric strings (surrounding
    whitespace ignored). Floats go through ``str`` so ``0.1`` stays ``0.1``.

    Raises:
        InvalidNumericValueError: For booleans, empty or non-numeric text,
            NaN/infinity and any other type.
    """
    if isinstance(value, bool):
        raise InvalidNumericValueError(field, value)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidNumericValueError(field, value) from None
    else:
        raise InvalidNumericValueError(field, value)

    if not result.is_finite():
        raise InvalidNumericValueError(field, value)
    return result


def to_integer(value, field: str = 'value') -> int:
    """
    Coerce a cell value to ``int``.

    ``1001``, ``1001.0`` and ``"1001"`` are accepted; ``1001.5`` is not.
    """
    number = to_decimal(value, field)
    if number != number.to_integral_value():
        raise InvalidNumericValueError(field, value)
    return int(number)


def to_calendar_date(serial) -> str:
    """
    Convert a spreadsheet serial date to ``YYYY-MM-DD`` (UTC).

    The whole-day part of ``serial - 25569`` is taken before scaling to
    seconds, so any time-of-day fraction is dropped rather than rounded:
    ``44197`` and ``44197.75`` both give ``2021-01-01``.

    ``date``/``datetime`` values (openpyxl returns these for date-formatted
    cells) are formatted directly, dropping the time.
    """
    if isinstance(serial, datetime):
        return serial.date().isoformat()
    if isinstance(serial, date):
        return serial.isoformat()

    days = to_decimal(serial, 'invoice_date') - SERIAL_UNIX_OFFSET
    unix_timestamp = int(days) * SECONDS_PER_DAY
    try:
        converted = datetime.fromtimestamp(unix_timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise InvalidNumericValueError('invoice_date', serial) from None
    return converted.strftime('%Y-%m-%d')
