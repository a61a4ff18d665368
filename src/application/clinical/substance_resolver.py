"""
Substance Resolution Service

Resolves free-text medication names (brand, generic, French spelling, with
or without dose) to canonical substance ids from the substance registry.

Matching is containment in both directions after normalization. Aliases
shorter than the configured minimum length only match whole words, so that
"fer" does not fire inside "ferritin" and "asa" does not fire inside
"nasal". When several aliases match, an alias contained in a longer matched
alias is dropped ("esomeprazole" is not also "omeprazole"). Inputs that
still resolve to more than one substance are flagged ambiguous rather than
silently resolved.
"""

import logging
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from config.engine_config import ResolverConfig, get_engine_config
from domain.knowledge_base import ClinicalKnowledgeBase, get_knowledge_base
from domain.substances import normalize_name

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4096)
def _word_pattern(term: str) -> "re.Pattern":
    return re.compile(r"(?<![a-z0-9])" + re.escape(term) + r"(?![a-z0-9])")


def contains_term(text: str, term: str, min_length: int) -> bool:
    """True if `term` occurs in `text`; short terms must be whole words."""
    if not text or not term:
        return False
    if len(term) < min_length:
        return _word_pattern(term).search(text) is not None
    return term in text


def names_match(normalized_input: str, alias: str, min_length: int) -> bool:
    """Bidirectional containment between a normalized input and an alias."""
    if not normalized_input or not alias:
        return False
    if contains_term(normalized_input, alias, min_length):
        return True
    return contains_term(alias, normalized_input, min_length)


@dataclass(frozen=True)
class SubstanceMatch:
    """Result of resolving one medication name.

    Attributes:
        original_name: Name as supplied
        normalized_name: Name after normalization
        substance_ids: Canonical ids the name resolves to
        class_ids: Drug classes of those substances plus classes named directly
        matched_aliases: Registry aliases that matched after pruning
        ambiguous: More than one substance, or input too short to trust
        suggestions: Close spellings when nothing matched
    """

    original_name: str
    normalized_name: str
    substance_ids: Tuple[str, ...] = ()
    class_ids: Tuple[str, ...] = ()
    matched_aliases: FrozenSet[str] = field(default_factory=frozenset)
    ambiguous: bool = False
    suggestions: Tuple[str, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return len(self.substance_ids) == 1

    @property
    def canonical_id(self) -> Optional[str]:
        return self.substance_ids[0] if self.is_resolved else None

    def to_dict(self) -> dict:
        return {
            "original_name": self.original_name,
            "normalized_name": self.normalized_name,
            "substance_ids": list(self.substance_ids),
            "class_ids": list(self.class_ids),
            "ambiguous": self.ambiguous,
            "suggestions": list(self.suggestions),
        }


class SubstanceResolver:
    """Alias-normalization step in front of every name comparison."""

    def __init__(
        self,
        knowledge_base: Optional[ClinicalKnowledgeBase] = None,
        config: Optional[ResolverConfig] = None,
    ):
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.config = config or get_engine_config().resolver
        self.min_length = self.config.min_substring_alias_length

        # alias -> ids
        self.alias_to_substances: Dict[str, Set[str]] = {}
        self.alias_to_classes: Dict[str, Set[str]] = {}
        self._build_search_index()

    def _build_search_index(self) -> None:
        """Build normalized alias lookups for substances and classes."""
        for substance in self.knowledge_base.substances.values():
            for name in substance.all_names:
                alias = normalize_name(name)
                if alias:
                    self.alias_to_substances.setdefault(alias, set()).add(substance.substance_id)
        for drug_class in self.knowledge_base.drug_classes.values():
            for name in drug_class.all_names:
                alias = normalize_name(name)
                if alias:
                    self.alias_to_classes.setdefault(alias, set()).add(drug_class.class_id)

        self.all_aliases: Tuple[str, ...] = tuple(
            dict.fromkeys(list(self.alias_to_substances) + list(self.alias_to_classes))
        )
        logger.debug(f"Substance resolver indexed {len(self.all_aliases)} aliases")

    def _matching_aliases(self, normalized: str) -> FrozenSet[str]:
        contained = [a for a in self.all_aliases if contains_term(normalized, a, self.min_length)]
        if not contained:
            # Truncated input: fall back to aliases that contain it
            return frozenset(
                a for a in self.all_aliases if contains_term(a, normalized, self.min_length)
            )
        # Longest match wins: drop aliases the input contains only as part of a longer alias
        return frozenset(
            a for a in contained
            if not any(a != other and a in other for other in contained)
        )

    def _suggest(self, normalized: str) -> Tuple[str, ...]:
        scored = []
        for alias in self.all_aliases:
            similarity = SequenceMatcher(None, normalized, alias).ratio()
            if similarity >= self.config.suggestion_threshold:
                scored.append((alias, similarity))
        scored.sort(key=lambda x: x[1], reverse=True)
        return tuple(a for a, _ in scored[: self.config.max_suggestions])

    def resolve(self, name: str) -> SubstanceMatch:
        """Resolve a free-text medication name to canonical substance ids."""
        normalized = normalize_name(name)
        if not normalized:
            return SubstanceMatch(original_name=name or "", normalized_name="")

        matched = self._matching_aliases(normalized)

        substance_ids: List[str] = []
        class_ids: List[str] = []
        for alias in sorted(matched):
            substance_ids.extend(sorted(self.alias_to_substances.get(alias, ())))
            class_ids.extend(sorted(self.alias_to_classes.get(alias, ())))
        substance_ids = list(dict.fromkeys(substance_ids))
        for substance_id in substance_ids:
            class_ids.extend(self.knowledge_base.substances[substance_id].classes)
        class_ids = list(dict.fromkeys(class_ids))

        ambiguous = len(substance_ids) > 1 or len(normalized) < self.min_length
        suggestions = () if matched else self._suggest(normalized)

        if ambiguous and matched:
            logger.warning(f"Ambiguous medication name '{name}': matches {substance_ids or class_ids}")
        elif not matched:
            logger.debug(f"No registry match for '{name}' (suggestions: {list(suggestions)})")

        return SubstanceMatch(
            original_name=name,
            normalized_name=normalized,
            substance_ids=tuple(substance_ids),
            class_ids=tuple(class_ids),
            matched_aliases=matched,
            ambiguous=ambiguous,
            suggestions=suggestions,
        )

    def resolve_batch(self, names: Iterable[str]) -> List[SubstanceMatch]:
        return [self.resolve(n) for n in names]

    def matches_token(self, match: SubstanceMatch, token: str) -> bool:
        """Whether a resolved name falls under a table token (substance or class id)."""
        for alias in self.knowledge_base.aliases_for(token):
            if alias in self.alias_to_substances or alias in self.alias_to_classes:
                if alias in match.matched_aliases:
                    return True
            elif names_match(match.normalized_name, alias, self.min_length):
                # Token outside the registry: compare literally
                return True
        return False

    def name_matches_token(self, name: str, token: str) -> bool:
        return self.matches_token(self.resolve(name), token)


# Global instance for easy access
_resolver_instance: Optional[SubstanceResolver] = None


def get_substance_resolver() -> SubstanceResolver:
    """Get the global substance resolver instance."""
    global _resolver_instance
    if _resolver_instance is None:
        _resolver_instance = SubstanceResolver()
    return _resolver_instance
