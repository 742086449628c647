"""Custom exception hierarchy for mergetok tokenization errors."""

import regex as re


class MergeTokError(Exception):
    """Base exception for all mergetok errors."""


class ConfigError(MergeTokError):
    """Raised when tokenizer or trainer options are malformed."""

    def __init__(
        self, message: str, *, option: str | None = None, value: object = None
    ) -> None:
        extra = " "
        if option:
            extra += f"(option: {option}) (got {value!r}) "
        super().__init__(message + extra)
        self.option = option
        self.value = value


class ArtifactNotFoundError(MergeTokError):
    """Raised when a merges, vocabulary or corpus file does not exist."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(f"{message} (path: {path})")
        self.path = path


class ArtifactInvalidError(MergeTokError):
    """Raised when a persisted artifact cannot be parsed or is empty."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
    ) -> None:
        """Initialize with optional path and line number appended to the message."""
        extra = " "
        if path:
            extra += f"(path: {path}) "
        if line is not None:
            extra += f"(line: {line}) "
        super().__init__(message + extra)
        self.path = path
        self.line = line


class UnknownTokenIdError(MergeTokError):
    """Raised when a token id is neither a special token nor in the vocabulary."""

    def __init__(self, message: str, *, token_id: int) -> None:
        super().__init__(f"{message} (invalid token: {token_id})")
        self.token_id = token_id


class SequenceTooLongError(MergeTokError):
    """Raised when an encoding exceeds ``max_length`` and truncation is off."""

    def __init__(self, message: str, *, length: int, max_length: int) -> None:
        super().__init__(f"{message} (length: {length}) (max length: {max_length})")
        self.length = length
        self.max_length = max_length


class PatternError(MergeTokError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        :param message: Error message.
        :param pattern: The regex pattern that failed.
        :param regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra)
        self.pattern = pattern
        self.regex_err = regex_err


class SpecialTokenError(MergeTokError):
    """Raised when special token handling fails."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens


class TokenizationError(MergeTokError):
    """Raised when a chunk cannot be tokenized."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} (position: {position})"
        super().__init__(message)
        self.position = position
