# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from coreason_phenodigm.schemas import Organism, PhenodigmMatchRawScore, PhenotypeMatch, TheoreticalModel


def _is_better_match(candidate: PhenotypeMatch, current: Optional[PhenotypeMatch]) -> bool:
    """Highest score wins, ties go to the lexicographically smallest match id."""
    if current is None:
        return True
    if candidate.score != current.score:
        return candidate.score > current.score
    return candidate.match_phenotype_id < current.match_phenotype_id


class OrganismPhenotypeMatcher:
    """
    Stores the PhenotypeMatches for a set of query phenotype ids against the ontology of one organism.
    These represent the best possible matches a model of that organism could have.

    The matcher is immutable once built and can be shared between threads.
    """

    def __init__(
        self,
        organism: Organism,
        query_terms: Sequence[str],
        matches_by_query_term: Mapping[str, Mapping[str, PhenotypeMatch]],
    ):
        """
        Args:
            organism: The organism whose ontology the query terms were matched against.
            query_terms: The ordered query phenotype ids.
            matches_by_query_term: query id -> match id -> PhenotypeMatch. Query ids without
                a match may be absent or map to an empty mapping.
        """
        self._organism = organism
        self._query_terms: Tuple[str, ...] = tuple(dict.fromkeys(query_terms))

        self._matches_by_query_term: Mapping[str, Mapping[str, PhenotypeMatch]] = MappingProxyType(
            {
                query_id: MappingProxyType(dict(matches_by_query_term.get(query_id, {})))
                for query_id in self._query_terms
            }
        )

        # (query id, match id) -> PhenotypeMatch
        self._mapped_terms: Dict[Tuple[str, str], PhenotypeMatch] = {
            (query_id, match_id): match
            for query_id, matches in self._matches_by_query_term.items()
            for match_id, match in matches.items()
        }

        self._matched_organism_phenotype_ids = frozenset(match_id for _, match_id in self._mapped_terms)
        self._matched_query_phenotype_ids: Tuple[str, ...] = tuple(
            sorted(query_id for query_id, matches in self._matches_by_query_term.items() if matches)
        )

    @classmethod
    def of(
        cls, organism: Organism, query_term_phenotype_matches: Mapping[str, Iterable[PhenotypeMatch]]
    ) -> "OrganismPhenotypeMatcher":
        """
        Builds a matcher from query ids and their (possibly duplicated) matches, keeping the highest
        scoring match for each (query id, match id) pair.
        """
        matches_by_query_term: Dict[str, Dict[str, PhenotypeMatch]] = {}
        for query_id, matches in query_term_phenotype_matches.items():
            indexed = matches_by_query_term.setdefault(query_id, {})
            for match in matches:
                current = indexed.get(match.match_phenotype_id)
                if current is None or match.score > current.score:
                    indexed[match.match_phenotype_id] = match
        return cls(organism, list(query_term_phenotype_matches.keys()), matches_by_query_term)

    @property
    def organism(self) -> Organism:
        return self._organism

    @property
    def query_terms(self) -> Tuple[str, ...]:
        return self._query_terms

    @property
    def term_phenotype_matches(self) -> Mapping[str, Mapping[str, PhenotypeMatch]]:
        return self._matches_by_query_term

    def best_phenotype_matches(self) -> Dict[str, PhenotypeMatch]:
        """
        Returns the single best match for each query term which has at least one match, in query term order.
        """
        best_matches: Dict[str, PhenotypeMatch] = {}
        for query_id, matches in self._matches_by_query_term.items():
            best: Optional[PhenotypeMatch] = None
            for match in matches.values():
                if _is_better_match(match, best):
                    best = match
            if best is not None:
                best_matches[query_id] = best
        return best_matches

    def best_theoretical_model(self) -> TheoreticalModel:
        """
        Builds the model made of exactly the best matched phenotypes for the query terms. Its raw score
        is calculated the same way as for any other model, so a real model with the same phenotypes
        normalises to 1.0.
        """
        best_matches = self.best_phenotype_matches()
        phenotype_ids = tuple(dict.fromkeys(match.match_phenotype_id for match in best_matches.values()))
        return TheoreticalModel(
            organism=self._organism,
            query_term_ids=self._query_terms,
            phenotype_ids=phenotype_ids,
            best_phenotype_matches=tuple(best_matches.values()),
            raw_score=self.match_phenotype_ids(phenotype_ids),
        )

    def _get_matching_phenotypes(self, model_phenotypes: Iterable[str]) -> List[str]:
        return [
            phenotype_id
            for phenotype_id in dict.fromkeys(model_phenotypes)
            if phenotype_id in self._matched_organism_phenotype_ids
        ]

    def match_phenotype_ids(self, model_phenotypes: Iterable[str]) -> PhenodigmMatchRawScore:
        """
        Calculates the best forward (query -> model) and reverse (model -> query) matches for a list of
        model phenotypes against the query phenotype matches of this organism. The best forward and
        reverse matches are not necessarily the same.
        """
        matched_model_phenotype_ids = self._get_matching_phenotypes(model_phenotypes)

        max_model_match_score = 0.0
        sum_model_best_match_scores = 0.0
        best_phenotype_match_for_terms: Dict[str, PhenotypeMatch] = {}

        # forward query -> model scores
        for query_id in self._matched_query_phenotype_ids:
            best_match_score = 0.0
            for model_id in matched_model_phenotype_ids:
                match = self._mapped_terms.get((query_id, model_id))
                if match is not None:
                    best_match_score = max(match.score, best_match_score)
                    if match.score > 0:
                        self._add_match_if_absent_or_better(match, best_phenotype_match_for_terms)
            if best_match_score > 0:
                sum_model_best_match_scores += best_match_score
                max_model_match_score = max(best_match_score, max_model_match_score)

        # reciprocal model -> query scores
        for model_id in matched_model_phenotype_ids:
            best_match_score = 0.0
            for query_id in self._matched_query_phenotype_ids:
                match = self._mapped_terms.get((query_id, model_id))
                if match is not None:
                    best_match_score = max(match.score, best_match_score)
                    if match.score > 0:
                        self._add_match_if_absent_or_better(match, best_phenotype_match_for_terms)
            if best_match_score > 0:
                sum_model_best_match_scores += best_match_score
                max_model_match_score = max(best_match_score, max_model_match_score)

        return PhenodigmMatchRawScore(
            max_model_match_score=max_model_match_score,
            sum_model_best_match_scores=sum_model_best_match_scores,
            matching_phenotypes=tuple(matched_model_phenotype_ids),
            best_phenotype_matches=tuple(best_phenotype_match_for_terms.values()),
        )

    @staticmethod
    def _add_match_if_absent_or_better(match: PhenotypeMatch, best_matches: Dict[str, PhenotypeMatch]) -> None:
        current = best_matches.get(match.query_phenotype_id)
        if current is None or current.score < match.score:
            best_matches[match.query_phenotype_id] = match

    def calculate_best_forward_and_reciprocal_matches(self, model_phenotypes: Iterable[str]) -> List[PhenotypeMatch]:
        """
        Returns the best match of each query term against the model phenotypes, followed by the
        best match of each model phenotype against the query terms.
        """
        matched_model_phenotype_ids = self._get_matching_phenotypes(model_phenotypes)

        forward_matches = []
        for query_id in self._matched_query_phenotype_ids:
            best = self._best_of(
                self._mapped_terms.get((query_id, model_id)) for model_id in matched_model_phenotype_ids
            )
            if best is not None:
                forward_matches.append(best)

        # the same lookup as above, but iterating the model phenotypes in the outer loop
        reciprocal_matches = []
        for model_id in matched_model_phenotype_ids:
            best = self._best_of(
                self._mapped_terms.get((query_id, model_id)) for query_id in self._matched_query_phenotype_ids
            )
            if best is not None:
                reciprocal_matches.append(best)

        return forward_matches + reciprocal_matches

    @staticmethod
    def _best_of(matches: Iterable[Optional[PhenotypeMatch]]) -> Optional[PhenotypeMatch]:
        best: Optional[PhenotypeMatch] = None
        for match in matches:
            if match is not None and (best is None or match.score > best.score):
                best = match
        return best

    @staticmethod
    def calculate_best_phenotype_matches_by_term(matches: Iterable[PhenotypeMatch]) -> List[PhenotypeMatch]:
        """
        Returns the best PhenotypeMatch for each query term found in the input matches.
        """
        best_matches: Dict[str, PhenotypeMatch] = {}
        for match in matches:
            current = best_matches.get(match.query_phenotype_id)
            if current is None or match.score > current.score:
                best_matches[match.query_phenotype_id] = match
        return list(best_matches.values())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, OrganismPhenotypeMatcher):
            return NotImplemented
        return (
            self._organism == other._organism
            and self._query_terms == other._query_terms
            and self._mapped_terms == other._mapped_terms
        )

    def __hash__(self) -> int:
        return hash((self._organism, self._query_terms, frozenset(self._mapped_terms.items())))

    def __repr__(self) -> str:
        return (
            f"OrganismPhenotypeMatcher(organism={self._organism.value}, "
            f"query_terms={list(self._query_terms)}, matches={len(self._mapped_terms)})"
        )
