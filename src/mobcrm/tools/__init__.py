"""CRM tools — contact merge and duplicate detection.

Re-exports the public symbols so callers can ``from mobcrm.tools import X``.
"""

from mobcrm.tools.contacts import (
    _parse_contact,
    compose_name,
    get_owned_contact,
)
from mobcrm.tools.duplicates import (
    DEFAULT_DUPLICATE_LIMIT,
    DuplicateMatch,
    contact_find_duplicates,
    find_duplicate_matches,
)
from mobcrm.tools.merge import (
    SUMMARY_KEYS,
    ContactMergeError,
    MergeFailedError,
    PrimaryNotFoundError,
    SecondaryNotFoundError,
    SelfMergeError,
    contact_merge,
)
from mobcrm.tools.relationship_types import INVERSE_TYPES, inverse_type

__all__ = [
    "DEFAULT_DUPLICATE_LIMIT",
    "INVERSE_TYPES",
    "SUMMARY_KEYS",
    "ContactMergeError",
    "DuplicateMatch",
    "MergeFailedError",
    "PrimaryNotFoundError",
    "SecondaryNotFoundError",
    "SelfMergeError",
    "_parse_contact",
    "compose_name",
    "contact_find_duplicates",
    "contact_merge",
    "find_duplicate_matches",
    "get_owned_contact",
    "inverse_type",
]
