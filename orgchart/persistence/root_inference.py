"""
Root inference for formats that do not mark the top-level unit.

The policy is applied in a fixed order and the rule that decided is reported:

1. ``single``       exactly one unit has no parent;
2. ``keyword``      the first parentless unit whose name contains a root keyword;
3. ``descendants``  the parentless unit with the most descendants (first on ties);
4. ``first``        the first parentless unit encountered;
5. ``arbitrary``    no unit is parentless (cyclic or fully linked data), the first unit is used.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from orgchart.models import Unit

logger = logging.getLogger(__name__)

DEFAULT_ROOT_KEYWORDS = ('acme', 'root', 'azienda', 'company', 'corp')

RULE_SINGLE = 'single'
RULE_KEYWORD = 'keyword'
RULE_DESCENDANTS = 'descendants'
RULE_FIRST = 'first'
RULE_ARBITRARY = 'arbitrary'


@dataclass
class RootChoice:
    unit: Unit
    rule: str
    candidates: int


def infer_root(units: Sequence[Unit], keywords: Optional[Iterable[str]] = None) -> Optional[RootChoice]:
    """Pick the top-level unit among ``units`` (in the order they were read)."""
    if not units:
        return None
    keywords = [keyword.lower() for keyword in (DEFAULT_ROOT_KEYWORDS if keywords is None else keywords) if keyword]

    candidates = [unit for unit in units if unit.parent is None]
    if not candidates:
        logger.warning("No parentless unit among %d units, using %r as root", len(units), units[0].name)
        return RootChoice(units[0], RULE_ARBITRARY, 0)

    if len(candidates) == 1:
        return RootChoice(candidates[0], RULE_SINGLE, 1)

    for unit in candidates:
        name = (unit.name or '').lower()
        if any(keyword in name for keyword in keywords):
            logger.info("Root %r chosen by name among %d candidates", unit.name, len(candidates))
            return RootChoice(unit, RULE_KEYWORD, len(candidates))

    best = candidates[0]
    best_count = best.descendant_count()
    for unit in candidates[1:]:
        count = unit.descendant_count()
        if count > best_count:
            best, best_count = unit, count
    if best_count > 0:
        logger.info("Root %r chosen with %d descendants among %d candidates",
                    best.name, best_count, len(candidates))
        return RootChoice(best, RULE_DESCENDANTS, len(candidates))

    logger.info("Root %r chosen as first of %d candidates", candidates[0].name, len(candidates))
    return RootChoice(candidates[0], RULE_FIRST, len(candidates))
