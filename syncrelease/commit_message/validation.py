"""Commit message validation using Chain of Responsibility pattern."""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, Tuple

from ..models import CommitType, ValidationResult
from .parser import (
    FOOTER_TOKEN_PATTERN,
    SCOPE_PATTERN,
    CommitMessage,
    parse_footer_entry,
    parse_header,
)

FOOTER_TOKENS = (
    "[CLOSE]",
    "[CLOSE#<n>]",
    "[KNOWN ISSUE]",
    "[KNOWN ISSUE#<n>]",
    "[BREAKING CHANGES]",
    "[BREAKING CHANGES#<n>]",
)


class ValidationHandler(ABC):
    """Abstract base class for validation handlers."""

    rule = ""

    def __init__(self, next_handler: Optional['ValidationHandler'] = None):
        self.next_handler = next_handler

    def handle(self, message: CommitMessage) -> ValidationResult:
        """Handle validation and pass to next handler if valid."""
        is_valid, reason = self.validate(message)
        if not is_valid:
            return ValidationResult(False, self.rule, reason)
        if not self.next_handler:
            return ValidationResult(True)
        return self.next_handler.handle(message)

    @abstractmethod
    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        """Validate the commit message."""
        pass


class EmptyMessageHandler(ValidationHandler):
    """Validates that the message is not empty."""

    rule = "empty"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        if message.is_empty:
            return False, "Empty commit message"
        return True, ""


class SignoffHandler(ValidationHandler):
    """Validates the Signed-off-by trailer when one is required."""

    rule = "signoff"

    def __init__(self, required: bool = False, next_handler: Optional[ValidationHandler] = None):
        super().__init__(next_handler)
        self.required = required

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        if self.required and not message.signoffs:
            return False, "Missing 'Signed-off-by:' trailer (use git commit -s)"
        return True, ""


class HeaderFormatHandler(ValidationHandler):
    """Validates the overall header shape."""

    rule = "header"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        if parse_header(message.header) is None:
            return False, "Header must follow format: type(scope): subject"
        return True, ""


class HeaderTypeHandler(ValidationHandler):
    """Validates the commit type against the fixed set."""

    rule = "header-type"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        header = parse_header(message.header)
        if header.type not in CommitType.values():
            return False, (
                f"Unknown commit type '{header.type}', expected one of: "
                f"{', '.join(CommitType.values())}"
            )
        return True, ""


class HeaderScopeHandler(ValidationHandler):
    """Validates that the scope is a single word or '*'."""

    rule = "header-scope"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        header = parse_header(message.header)
        if header.scope is not None and not SCOPE_PATTERN.match(header.scope):
            return False, f"Scope must be a single word or '*', got '{header.scope}'"
        return True, ""


class HeaderSubjectHandler(ValidationHandler):
    """Validates the subject text.

    Subjects should be written in the imperative mood ("add", not "added").
    That is not checked here.
    """

    rule = "header-subject"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        subject = parse_header(message.header).subject
        if not subject.strip():
            return False, "Subject must not be empty"
        if subject.endswith('.'):
            return False, "Subject line should not end with a period"
        if subject[0].isupper():
            return False, "Subject must not start with an uppercase letter"
        return True, ""


class BlankLineHandler(ValidationHandler):
    """Validates blank line after subject."""

    rule = "blank-line"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        if len(message.lines) > 1 and message.lines[1].strip() != '':
            return False, "Leave one blank line after subject"
        return True, ""


class FooterHandler(ValidationHandler):
    """Validates footer placement and entry tokens."""

    rule = "footer"

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        for block in message.body:
            for line in block:
                if FOOTER_TOKEN_PATTERN.match(line):
                    return False, (
                        f"Footer entry must be in its own block after a blank line: {line}"
                    )
        for line in message.footer or []:
            if line[:1].isspace():
                continue
            if parse_footer_entry(line) is None:
                return False, (
                    f"Invalid footer entry: {line} "
                    f"(expected one of {', '.join(FOOTER_TOKENS)})"
                )
        return True, ""


class LineLengthHandler(ValidationHandler):
    """Advisory line length check; never rejects."""

    rule = "line-length"

    def __init__(self, max_length: int = 100, next_handler: Optional[ValidationHandler] = None):
        super().__init__(next_handler)
        self.max_length = max_length

    def validate(self, message: CommitMessage) -> Tuple[bool, str]:
        return True, ""

    def handle(self, message: CommitMessage) -> ValidationResult:
        result = super().handle(message)
        warnings = tuple(
            f"Line {number} is {len(line)} characters (recommended <= {self.max_length})"
            for number, line in enumerate(message.lines, start=1)
            if len(line) > self.max_length
        )
        return replace(result, warnings=warnings + result.warnings)


def create_validation_chain(require_signoff: bool = False, max_line_length: int = 100) -> ValidationHandler:
    """Create the default validation chain."""
    footer = FooterHandler()
    blank_line = BlankLineHandler(footer)
    subject = HeaderSubjectHandler(blank_line)
    scope = HeaderScopeHandler(subject)
    commit_type = HeaderTypeHandler(scope)
    header = HeaderFormatHandler(commit_type)
    signoff = SignoffHandler(require_signoff, header)
    empty_message = EmptyMessageHandler(signoff)
    line_length = LineLengthHandler(max_line_length, empty_message)

    return line_length
