# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

from typing import Dict, FrozenSet, Iterable, List

from loguru import logger

from coreason_phenodigm.interfaces import OntologyService
from coreason_phenodigm.matcher import OrganismPhenotypeMatcher
from coreason_phenodigm.schemas import Organism, PhenotypeMatch, PhenotypeTerm


class PhenotypeMatchService:
    """
    Builds the OrganismPhenotypeMatcher for a set of query HPO ids against the ontology of an organism.
    This is the only step of the scoring which touches the OntologyService.
    """

    def __init__(self, ontology_service: OntologyService):
        self.ontology_service = ontology_service

    def get_matcher_for_terms(self, organism: Organism, query_terms: Iterable[str]) -> OrganismPhenotypeMatcher:
        """
        Args:
            organism: The organism whose ontology the query terms are matched against.
            query_terms: Ordered, already validated HPO ids. Duplicates are ignored.

        Returns:
            OrganismPhenotypeMatcher: An immutable matcher. Terms without any match are kept with no entries.
        """
        query_ids = list(dict.fromkeys(query_terms))
        logger.info(f"Fetching {organism.value} phenotype matches for {len(query_ids)} query terms")

        query_term_phenotype_matches: Dict[str, FrozenSet[PhenotypeMatch]] = {}
        for query_id in query_ids:
            matches = self.ontology_service.get_matches_for(organism, query_id)
            if not matches:
                logger.debug(f"No {organism.value} phenotype matches found for {query_id}")
            query_term_phenotype_matches[query_id] = matches

        return OrganismPhenotypeMatcher.of(organism, query_term_phenotype_matches)

    def get_human_matcher_for_terms(self, query_terms: Iterable[str]) -> OrganismPhenotypeMatcher:
        return self.get_matcher_for_terms(Organism.HUMAN, query_terms)

    def get_mouse_matcher_for_terms(self, query_terms: Iterable[str]) -> OrganismPhenotypeMatcher:
        return self.get_matcher_for_terms(Organism.MOUSE, query_terms)

    def get_fish_matcher_for_terms(self, query_terms: Iterable[str]) -> OrganismPhenotypeMatcher:
        return self.get_matcher_for_terms(Organism.FISH, query_terms)

    def make_phenotype_terms_from_hpo_ids(self, hpo_ids: Iterable[str]) -> List[PhenotypeTerm]:
        """
        Resolves HPO ids to PhenotypeTerms. Unrecognised ids are skipped.
        """
        terms = []
        for hpo_id in hpo_ids:
            term = self.ontology_service.get_phenotype_term_for_hpo_id(hpo_id)
            if term is None:
                logger.warning(f"Unrecognised HPO id {hpo_id} - skipping")
                continue
            terms.append(term)
        return terms
