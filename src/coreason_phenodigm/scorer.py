# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

from loguru import logger

from coreason_phenodigm.matcher import OrganismPhenotypeMatcher
from coreason_phenodigm.models import Model, ModelPhenotypeMatch
from coreason_phenodigm.schemas import PhenodigmMatchRawScore, TheoreticalModel


class PhenodigmModelScorer:
    """
    Implements the Phenodigm (PHENOtype comparisons for DIsease Genes and Models) algorithm for scoring the
    semantic similarity of a model against the best theoretical model for a set of phenotypes in a given
    organism. See https://doi.org/10.1093/database/bat025

    Use one of the factory methods to create an instance:
    - for_same_species: human models against human query phenotypes (HP-HP).
    - for_single_cross_species: models of a single other species (HP-MP or HP-ZP).
    - for_multi_cross_species: models of several species ranked together on the scale of a reference
      organism (usually human).
    """

    def __init__(
        self,
        theoretical_model: TheoreticalModel,
        organism_phenotype_matcher: OrganismPhenotypeMatcher,
        num_query_phenotypes: int,
    ):
        self.theoretical_model = theoretical_model
        self.theoretical_max_match_score = theoretical_model.max_match_score
        self.theoretical_best_avg_score = theoretical_model.best_avg_score

        self.organism_phenotype_matcher = organism_phenotype_matcher
        self.num_query_phenotypes = num_query_phenotypes
        self._log_organism_phenotype_matches()

    @classmethod
    def for_same_species(cls, phenotype_matcher: OrganismPhenotypeMatcher) -> "PhenodigmModelScorer":
        """
        Scores models of the same organism as the query, e.g. disease models or patients encoded using HPO terms.

        Args:
            phenotype_matcher: The HP-HP matches for the query phenotypes.
        """
        num_query_phenotypes = len(phenotype_matcher.query_terms)
        return cls(phenotype_matcher.best_theoretical_model(), phenotype_matcher, num_query_phenotypes)

    @classmethod
    def for_single_cross_species(cls, phenotype_matcher: OrganismPhenotypeMatcher) -> "PhenodigmModelScorer":
        """
        Scores models of a single non-human organism against their own theoretical best model.

        Args:
            phenotype_matcher: The HP-MP or HP-ZP matches for the query phenotypes.
        """
        num_query_phenotypes = len(phenotype_matcher.best_phenotype_matches())
        return cls(phenotype_matcher.best_theoretical_model(), phenotype_matcher, num_query_phenotypes)

    @classmethod
    def for_multi_cross_species(
        cls, theoretical_model: TheoreticalModel, phenotype_matcher: OrganismPhenotypeMatcher
    ) -> "PhenodigmModelScorer":
        """
        Scores models across multiple organisms. All organisms are normalised against the same reference
        theoretical model so that the scores are comparable between organisms.

        Args:
            theoretical_model: The best theoretical model of the reference organism, i.e. the HP-HP matches.
            phenotype_matcher: The HP-HP, HP-MP or HP-ZP matches for the organism of the models to be scored.
        """
        return cls(theoretical_model, phenotype_matcher, theoretical_model.num_query_terms)

    def _log_organism_phenotype_matches(self) -> None:
        matcher = self.organism_phenotype_matcher
        logger.debug(f"Best {matcher.organism.value} phenotype matches:")
        best_matches = matcher.best_phenotype_matches()
        for query_id in matcher.query_terms:
            best_match = best_matches.get(query_id)
            if best_match is None:
                logger.debug(f"{query_id}-NOT MATCHED")
            else:
                logger.debug(f"{query_id}-{best_match.match_phenotype_id}={best_match.score}")
        logger.debug(
            f"bestMaxScore={self.theoretical_max_match_score} bestAvgScore={self.theoretical_best_avg_score}"
        )

    def score_model(self, model: Model) -> ModelPhenotypeMatch:
        raw_model_score = self.organism_phenotype_matcher.match_phenotype_ids(model.phenotype_ids)
        score = self._calculate_combined_score(raw_model_score)
        return ModelPhenotypeMatch(
            score=score, model=model, best_phenotype_matches=raw_model_score.best_phenotype_matches
        )

    def _calculate_combined_score(self, raw_model_score: PhenodigmMatchRawScore) -> float:
        max_model_match_score = raw_model_score.max_model_match_score
        sum_model_best_match_scores = raw_model_score.sum_model_best_match_scores
        num_matching_phenotypes_for_model = len(raw_model_score.matching_phenotypes)

        if self.theoretical_max_match_score <= 0 or self.theoretical_best_avg_score <= 0:
            return 0.0

        # Semi-symmetrical comparison: only the model phenotypes matching the query subset are counted, otherwise
        # models with large numbers of phenotypes score badly against a small query.
        total_phenotypes_with_match = self.num_query_phenotypes + num_matching_phenotypes_for_model
        if sum_model_best_match_scores > 0:
            model_best_avg_score = sum_model_best_match_scores / total_phenotypes_with_match
            combined_score = 50 * (
                max_model_match_score / self.theoretical_max_match_score
                + model_best_avg_score / self.theoretical_best_avg_score
            )
            if combined_score > 100:
                combined_score = 100
            return combined_score / 100
        return 0.0

    def __repr__(self) -> str:
        return (
            f"PhenodigmModelScorer(theoretical_max_match_score={self.theoretical_max_match_score}, "
            f"theoretical_best_avg_score={self.theoretical_best_avg_score}, "
            f"organism_phenotype_matcher={self.organism_phenotype_matcher!r}, "
            f"num_query_phenotypes={self.num_query_phenotypes})"
        )
