"""Commit message validation."""
from .parser import CommitMessage
from .validation import create_validation_chain
from ..models import ValidationResult


class CommitMessageValidator:
    """Validates commit messages against the conventional commit grammar."""

    def __init__(self, require_signoff: bool = False, max_line_length: int = 100):
        self.require_signoff = require_signoff
        self.max_line_length = max_line_length
        self.validation_chain = create_validation_chain(require_signoff, max_line_length)

    def validate(self, text: str) -> ValidationResult:
        """Validate raw message text; comment lines are ignored."""
        return self.validation_chain.handle(CommitMessage.parse(text))
