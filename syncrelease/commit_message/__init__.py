"""Commit message parsing and validation package."""

from .parser import CommitMessage, Header, parse_footer_entry, parse_header
from .recovery import cache_rejected_message, restore_rejected_message
from .validator import CommitMessageValidator

__all__ = [
    'CommitMessage',
    'Header',
    'parse_footer_entry',
    'parse_header',
    'cache_rejected_message',
    'restore_rejected_message',
    'CommitMessageValidator',
]
