"""Relationship type taxonomy and the inverse-type table.

Every logical relationship is stored as two directed rows: ``A -> B`` with
type ``T`` and ``B -> A`` with type ``inverse(T)``. Symmetric types are their
own inverse.
"""

from __future__ import annotations

INVERSE_TYPES: dict[str, str] = {
    # Love
    "significant_other": "significant_other",
    "spouse": "spouse",
    "date": "date",
    "lover": "lover",
    "in_love_with": "in_love_with",
    "secret_lover": "secret_lover",
    "ex_boyfriend_girlfriend": "ex_boyfriend_girlfriend",
    "ex_husband_wife": "ex_husband_wife",
    # Family
    "parent": "child",
    "child": "parent",
    "sibling": "sibling",
    "grandparent": "grandchild",
    "grandchild": "grandparent",
    "uncle_aunt": "nephew_niece",
    "nephew_niece": "uncle_aunt",
    "cousin": "cousin",
    "godparent": "godchild",
    "godchild": "godparent",
    "step_parent": "step_child",
    "step_child": "step_parent",
    # Friend
    "friend": "friend",
    "best_friend": "best_friend",
    # Work
    "colleague": "colleague",
    "boss": "subordinate",
    "subordinate": "boss",
    "mentor": "protege",
    "protege": "mentor",
}


def inverse_type(relationship_type: str) -> str:
    """Return the inverse of *relationship_type*.

    Custom or unknown types are treated as symmetric.
    """
    return INVERSE_TYPES.get(relationship_type, relationship_type)
