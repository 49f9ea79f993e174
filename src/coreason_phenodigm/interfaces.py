# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

from typing import FrozenSet, Iterable, List, Optional, Protocol

from coreason_phenodigm.models import Model, ModelPhenotypeMatch
from coreason_phenodigm.schemas import Organism, PhenotypeMatch, PhenotypeTerm


class OntologyService(Protocol):
    """
    Protocol for the source of phenotype terms and precomputed phenotype matches.
    """

    def get_terms(self, organism: Organism) -> FrozenSet[PhenotypeTerm]:
        """
        Returns all the phenotype terms known for the ontology of an organism.
        """
        ...

    def get_matches_for(self, organism: Organism, hpo_id: str) -> FrozenSet[PhenotypeMatch]:
        """
        Returns the matches of an HPO term against the ontology of an organism.
        An unknown or unmatched term returns an empty set.
        """
        ...

    def get_phenotype_term_for_hpo_id(self, hpo_id: str) -> Optional[PhenotypeTerm]: ...

    def get_current_hpo_ids(self, hpo_ids: Iterable[str]) -> List[str]:
        """
        Replaces obsolete or alternate HPO ids with their current primary id.
        """
        ...


class ModelScorer(Protocol):
    """
    Protocol for scoring a model against a fixed set of query phenotypes.
    """

    def score_model(self, model: Model) -> ModelPhenotypeMatch: ...
