"""
Tab selection by allow-list and deny-list
"""

from typing import Iterable, List

from ..core.interfaces import SelectionCriteria


def select_tabs(identifiers: Iterable[str], criteria: SelectionCriteria) -> List[str]:
    """
    Filter tab identifiers, keeping their input order.

    A non-empty allow-list keeps only the tabs it names; the deny-list
    removes its tabs even when the allow-list also names them.
    """
    return [identifier for identifier in identifiers if criteria.allows(identifier)]
