"""
Codec for the database's variable-length NUMBER format.

A NUMBER travels as a 22-byte buffer:

- byte 0 holds the count of bytes that follow (exponent + mantissa),
  ``0xFF`` marks SQL NULL.
- byte 1 is the exponent byte. The high bit is set for positive numbers;
  the low 7 bits are a base-100 exponent biased by 64. For negative numbers
  the whole byte is bitwise inverted.
- bytes 2.. are base-100 mantissa digits. A positive digit ``d`` is stored as
  ``d + 1``, a negative one as ``101 - d``. Negative numbers carry a trailing
  ``102`` unless all 20 mantissa bytes are in use.

Up to 20 mantissa bytes are stored; 19 of them (38 decimal digits) are
guaranteed accurate.

Usage:
    >>> str(PackedNumber.from_string('-3.14'))
    '-3.14'
    >>> list(PackedNumber.from_string('1.2').to_bytes())
    [3, 193, 2, 21]
"""
import decimal
import logging
import math
import re
from collections.abc import Iterable, Sequence
from typing import Any, Self

import numpy as np

from ocibind.exceptions import NumberFormatError

logger = logging.getLogger(__name__)

NUMBER_SIZE = 22
MAX_MANTISSA = NUMBER_SIZE - 2
NULL_SENTINEL = 0xFF
NEGATIVE_TERMINATOR = 102
EXPONENT_BIAS = 192
MIN_EXPONENT = -63
MAX_EXPONENT = 63

_DECIMAL_LITERAL = re.compile(r'^\s*([+-]?)(\d*)(?:\.(\d*))?\s*$')
_ZERO = bytes([1, 128])


def _split_literal(text: str) -> tuple[bool, str, str]:
    """Split a decimal literal into (negative, integer digits, fraction digits).
    """
    match = _DECIMAL_LITERAL.match(text)
    if match is None:
        raise NumberFormatError(text)
    sign, int_part, frac_part = match.group(1), match.group(2), match.group(3) or ''
    if not int_part and not frac_part:
        raise NumberFormatError(text)
    return sign == '-', int_part, frac_part


def _encode(text: str) -> bytes:
    negative, int_part, frac_part = _split_literal(text)
    int_part = int_part.lstrip('0')
    frac_part = frac_part.rstrip('0')
    if not int_part and not frac_part:
        return _ZERO

    if len(int_part) % 2:
        int_part = '0' + int_part
    if len(frac_part) % 2:
        frac_part += '0'
    exponent = len(int_part) // 2
    digits = int_part + frac_part
    pairs = [int(digits[i:i + 2]) for i in range(0, len(digits), 2)]

    lead = 0
    while pairs[lead] == 0:
        lead += 1
    exponent -= lead
    pairs = pairs[lead:]
    while pairs[-1] == 0:
        pairs.pop()

    if len(pairs) > MAX_MANTISSA:
        raise NumberFormatError(text, f'more than {2 * MAX_MANTISSA} significant digits')
    if not MIN_EXPONENT <= exponent <= MAX_EXPONENT:
        raise NumberFormatError(text, 'exponent out of range')

    if negative:
        body = [~(exponent + EXPONENT_BIAS) & 0xFF]
        body.extend(101 - pair for pair in pairs)
        if len(pairs) < MAX_MANTISSA:
            body.append(NEGATIVE_TERMINATOR)
    else:
        body = [exponent + EXPONENT_BIAS]
        body.extend(pair + 1 for pair in pairs)
    return bytes([len(body)] + body)


def _decode(data: bytes) -> str | None:
    if data[0] == NULL_SENTINEL or (data[0] == 0 and data[1] == 0):
        return None
    length = min(data[0] - 1, MAX_MANTISSA)
    if length <= 0:
        return '0'

    first = data[1]
    positive = bool(first & 0x80)
    mantissa = data[2:2 + length]
    if positive:
        exponent = (first & 0x7F) - 64
        pairs = [b - 1 for b in mantissa]
    else:
        exponent = (~first & 0x7F) - 64
        if mantissa[-1] == NEGATIVE_TERMINATOR:
            mantissa = mantissa[:-1]
        pairs = [101 - b for b in mantissa]
    if any(not 0 <= pair <= 99 for pair in pairs):
        raise NumberFormatError(bytes(data[:length + 2]), 'corrupt mantissa')

    digits = ''.join(f'{pair:02d}' for pair in pairs)
    point = 2 * exponent
    if point <= 0:
        int_part, frac_part = '', '0' * -point + digits
    elif point >= len(digits):
        int_part, frac_part = digits + '0' * (point - len(digits)), ''
    else:
        int_part, frac_part = digits[:point], digits[point:]
    int_part = int_part.lstrip('0')
    frac_part = frac_part.rstrip('0')
    if not int_part and not frac_part:
        return '0'
    text = int_part + ('.' + frac_part if frac_part else '')
    return text if positive else '-' + text


def format_float(value: Any) -> str:
    """Format a binary float as the shortest positional decimal that round-trips.

    float32 values keep their own shortest form, so ``np.float32(3.14)``
    becomes ``'3.14'`` rather than its float64 expansion.

    >>> format_float(1.0)
    '1'
    >>> format_float(1e-05)
    '0.00001'
    """
    if not isinstance(value, np.floating):
        value = float(value)
    if not math.isfinite(value):
        raise NumberFormatError(str(value), 'not a finite number')
    return np.format_float_positional(value, unique=True, trim='-')


class PackedNumber:
    """Immutable 22-byte packed NUMBER value.
    """

    __slots__ = ('_data',)

    def __init__(self, data: bytes | bytearray | memoryview | Sequence[int] = b''):
        raw = bytes(data)[:NUMBER_SIZE]
        if not raw:
            raw = bytes([NULL_SENTINEL])
        self._data = raw.ljust(NUMBER_SIZE, b'\x00')

    # Constructors

    @classmethod
    def null(cls) -> Self:
        return cls(bytes([NULL_SENTINEL]))

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview | Sequence[int]) -> Self:
        return cls(data)

    @classmethod
    def from_string(cls, text: str) -> Self:
        """Encode a decimal literal; the empty string encodes NULL.
        """
        if text == '':
            return cls.null()
        return cls(_encode(text))

    @classmethod
    def from_int(cls, value: int) -> Self:
        return cls(_encode(str(int(value))))

    @classmethod
    def from_float(cls, value: float) -> Self:
        """Encode a binary float through its decimal text.

        This path is lossy by nature: float64 values that have no short
        decimal form are encoded from their shortest round-trip text.
        """
        return cls(_encode(format_float(value)))

    @classmethod
    def from_decimal(cls, value: decimal.Decimal) -> Self:
        if not value.is_finite():
            raise NumberFormatError(str(value), 'not a finite number')
        return cls(_encode(format(value, 'f')))

    @classmethod
    def from_value(cls, value: Any) -> Self:
        """Encode any supported host number.
        """
        if value is None:
            return cls.null()
        if isinstance(value, PackedNumber):
            return value
        if isinstance(value, bool):
            return cls.from_int(int(value))
        if isinstance(value, int | np.integer):
            return cls.from_int(int(value))
        if isinstance(value, float | np.floating):
            return cls.from_float(value)
        if isinstance(value, decimal.Decimal):
            return cls.from_decimal(value)
        if isinstance(value, str):
            return cls.from_string(value)
        if isinstance(value, bytes | bytearray | memoryview):
            return cls.from_bytes(value)
        raise NumberFormatError(value, f'cannot encode {type(value).__name__}')

    # Accessors

    @property
    def is_null(self) -> bool:
        return self._data[0] == NULL_SENTINEL or (self._data[0] == 0 and self._data[1] == 0)

    @property
    def valid(self) -> bool:
        return not self.is_null

    @property
    def length(self) -> int:
        """Number of meaningful bytes, including the length byte.
        """
        if self._data[0] == NULL_SENTINEL:
            return 1
        return min(self._data[0], NUMBER_SIZE - 1) + 1

    def to_bytes(self) -> bytes:
        """Meaningful bytes only, without the unused tail.
        """
        return self._data[:self.length]

    def __bytes__(self) -> bytes:
        return self._data

    def to_string(self) -> str:
        """Canonical decimal text; NULL renders as the empty string.
        """
        text = _decode(self._data)
        return '' if text is None else text

    def to_decimal(self) -> decimal.Decimal | None:
        text = _decode(self._data)
        return None if text is None else decimal.Decimal(text)

    def to_int(self) -> int | None:
        """Integer value, truncated toward zero.
        """
        value = self.to_decimal()
        return None if value is None else int(value)

    def to_float(self) -> float | None:
        text = _decode(self._data)
        return None if text is None else float(text)

    def unscaled(self) -> int:
        """Digits as an integer, ignoring the decimal point.
        """
        value = self.to_decimal()
        if value is None:
            return 0
        sign, digits, _ = value.as_tuple()
        unscaled = int(''.join(map(str, digits)) or '0')
        return -unscaled if sign else unscaled

    def scale(self) -> int:
        """Count of digits after the decimal point; negative for trailing zeros.
        """
        value = self.to_decimal()
        if value is None:
            return 0
        return -value.as_tuple().exponent

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        if self.is_null:
            return 'PackedNumber(NULL)'
        return f'PackedNumber({self.to_string()!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackedNumber):
            return NotImplemented
        if self.is_null or other.is_null:
            return self.is_null and other.is_null
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(b'' if self.is_null else self.to_bytes())


def encode_number(text: str) -> PackedNumber:
    """Encode decimal text into a PackedNumber.
    """
    return PackedNumber.from_string(text)


def decode_number(number: PackedNumber | bytes | Sequence[int]) -> str | None:
    """Decode a PackedNumber (or its raw bytes) into canonical text.

    Returns None for the NULL sentinel.
    """
    if not isinstance(number, PackedNumber):
        number = PackedNumber.from_bytes(number)
    return _decode(bytes(number))


def canonical(text: str) -> str:
    """Canonical database text form of a decimal literal.

    >>> canonical('0012.3400')
    '12.34'
    >>> canonical('-0')
    '0'
    >>> canonical('0.5')
    '.5'
    """
    return _decode(_encode(text))


def pack_numbers(values: Iterable[Any]) -> tuple[np.ndarray, list[int]]:
    """Encode values into one contiguous ``(n, 22)`` uint8 buffer.

    Returns the buffer and the 1-based positions holding NULL. Elements are
    encoded in order and the first failure aborts the whole array.
    """
    numbers = [PackedNumber.from_value(value) for value in values]
    buffer = np.zeros((len(numbers), NUMBER_SIZE), dtype=np.uint8)
    nulls = []
    for i, number in enumerate(numbers):
        buffer[i] = np.frombuffer(bytes(number), dtype=np.uint8)
        if number.is_null:
            nulls.append(i + 1)
    logger.debug(f'Packed {len(numbers)} numbers, {len(nulls)} NULL')
    return buffer, nulls


def unpack_numbers(buffer: np.ndarray) -> list[PackedNumber]:
    """Split an ``(n, 22)`` buffer back into PackedNumbers.
    """
    return [PackedNumber(row.tobytes()) for row in np.asarray(buffer, dtype=np.uint8)]
