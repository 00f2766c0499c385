"""
Exception classes for binding, fetching and number conversion.
"""


class DatabaseError(Exception):
    """Base class for all ocibind errors.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class TypeConversionError(DatabaseError):
    """Error converting types between Python and the database.
    """


class UnsupportedTypeError(TypeConversionError, TypeError):
    """No bind arm matches the host value.
    """

    def __init__(self, type_name: str, parameter: str | int | None = None):
        self.type_name = type_name
        self.parameter = parameter
        where = f'bind({parameter})' if parameter is not None else 'bind'
        super().__init__(f'{where}: unsupported type {type_name}')


class NumberFormatError(TypeConversionError, ValueError):
    """Text or bytes that are not a valid packed-number literal.
    """

    def __init__(self, literal, reason: str = 'invalid decimal literal'):
        self.literal = literal
        self.reason = reason
        super().__init__(f'{reason}: {literal!r}')


class NativeError(DatabaseError):
    """Error reported by the native client library.

    Carries the native error code and message text.
    """

    def __init__(self, code: int = 0, text: str = ''):
        self.code = code
        self.text = text
        super().__init__(f'ORA-{code:05d}: {text}' if code else text)


class BindError(DatabaseError):
    """A native bind call failed for a parameter.
    """

    def __init__(self, parameter: str, cause: BaseException):
        self.parameter = parameter
        self.code = getattr(cause, 'code', 0)
        super().__init__(f'bind({parameter}): {cause}')


class FetchError(DatabaseError):
    """Native column data could not be decoded.
    """

    def __init__(self, column: str | None, cause: BaseException):
        self.column = column
        self.code = getattr(cause, 'code', 0)
        super().__init__(f'fetch({column}): {cause}')


ConversionError = (
    TypeConversionError,
    NumberFormatError,
    UnsupportedTypeError,
    )

NativeFailure = (
    NativeError,
    BindError,
    FetchError,
    )
