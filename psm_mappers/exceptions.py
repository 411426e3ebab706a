"""Errors raised while reading identification result files."""

import typing as tp


class ParseError(Exception):
    """Base class for failures while parsing an identification file.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    file_name : str, optional
        Name of the file being parsed.
    position : str or int, optional
        Where the failure happened: a line number, a byte offset
        or an element path.
    """

    def __init__(
        self,
        message: str,
        file_name: tp.Optional[str] = None,
        position: tp.Optional[tp.Union[int, str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name
        self.position = position

    def with_context(self, file_name=None, position=None):
        """Fill in the file name and position if they are not known yet."""
        if self.file_name is None:
            self.file_name = file_name
        if self.position is None:
            self.position = position
        return self

    def __str__(self) -> str:
        location = []
        if self.file_name is not None:
            location.append(str(self.file_name))
        if self.position is not None:
            location.append(str(self.position))
        if location:
            return f"{self.message} ({', '.join(location)})"
        return self.message


class MalformedRecordError(ParseError):
    """A line, block or element does not have the expected structure."""


class MissingMandatoryFieldError(ParseError):
    """A column or attribute required by the format is missing."""

    def __init__(self, fields, file_name=None, position=None, message=None):
        self.fields = list(fields)
        if message is None:
            message = "Mandatory field(s) missing: " + ", ".join(self.fields)
        super().__init__(message, file_name, position)


class UnrecognizedScoreFieldError(ParseError):
    """None of the score fields of a record can be converted to an e-value."""

    def __init__(self, fields, file_name=None, position=None):
        self.fields = list(fields)
        if self.fields:
            message = "No e-value conversion known for score field(s): " + ", ".join(self.fields)
        else:
            message = "No score field found"
        super().__init__(message, file_name, position)


class UnknownSpecificityRuleError(ParseError):
    """A modification specificity rule code is not recognized."""

    def __init__(self, code, file_name=None, position=None):
        self.code = code
        super().__init__(f"Specificity rule {code} not recognized.", file_name, position)
