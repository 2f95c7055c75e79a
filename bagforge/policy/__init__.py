"""
Resource policy encoding.

Action name mapping, conversion outcomes, and the codec that moves an
object's policies in and out of policy documents.
"""

from bagforge.policy.actions import ACTION_NAMES, code_for, name_for
from bagforge.policy.codec import PolicyCodec, is_in_effect
from bagforge.policy.outcomes import ConversionIssue, OutcomeKind, RestoreReport

__all__ = [
    "ACTION_NAMES",
    "code_for",
    "name_for",
    "PolicyCodec",
    "is_in_effect",
    "ConversionIssue",
    "OutcomeKind",
    "RestoreReport",
]
