# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple, assert_never

from coreason_phenodigm.config import PhenodigmConfig
from coreason_phenodigm.interfaces import ModelScorer
from coreason_phenodigm.loader import PhenodigmLoader
from coreason_phenodigm.matcher import OrganismPhenotypeMatcher
from coreason_phenodigm.models import Model, ModelPhenotypeMatch
from coreason_phenodigm.ontology import CachingOntologyService, DuckDbOntologyService
from coreason_phenodigm.schemas import Organism
from coreason_phenodigm.scorer import PhenodigmModelScorer
from coreason_phenodigm.service import PhenotypeMatchService
from coreason_phenodigm.utils.logger import configure_logging, logger


class PhenodigmSession:
    """
    A single ranking session: the query phenotypes are matched against each requested organism once,
    and the scoring mode is chosen once. Scoring is then pure and can be fanned out over threads.
    """

    def __init__(
        self,
        phenotype_match_service: PhenotypeMatchService,
        query_terms: Iterable[str],
        organisms: Iterable[Organism] = (Organism.HUMAN,),
    ):
        self.query_terms: Tuple[str, ...] = tuple(dict.fromkeys(query_terms))
        self.organisms: Tuple[Organism, ...] = tuple(dict.fromkeys(organisms))
        if not self.organisms:
            raise ValueError("At least one organism is required for a phenodigm session.")

        self.matchers: Dict[Organism, OrganismPhenotypeMatcher] = {
            organism: phenotype_match_service.get_matcher_for_terms(organism, self.query_terms)
            for organism in self.organisms
        }
        self.scorers: Dict[Organism, PhenodigmModelScorer] = self._make_scorers(phenotype_match_service)

    def _make_scorers(self, phenotype_match_service: PhenotypeMatchService) -> Dict[Organism, PhenodigmModelScorer]:
        if self.organisms == (Organism.HUMAN,):
            logger.info("Scoring human models against human phenotypes")
            return {Organism.HUMAN: PhenodigmModelScorer.for_same_species(self.matchers[Organism.HUMAN])}

        if len(self.organisms) == 1:
            organism = self.organisms[0]
            logger.info(f"Scoring {organism.value} models against their own theoretical best model")
            return {organism: PhenodigmModelScorer.for_single_cross_species(self.matchers[organism])}

        human_matcher = self.matchers.get(Organism.HUMAN)
        if human_matcher is None:
            human_matcher = phenotype_match_service.get_human_matcher_for_terms(self.query_terms)
        theoretical_model = human_matcher.best_theoretical_model()
        logger.info(
            f"Scoring {', '.join(o.value for o in self.organisms)} models against the human theoretical best model"
        )
        return {
            organism: PhenodigmModelScorer.for_multi_cross_species(theoretical_model, matcher)
            for organism, matcher in self.matchers.items()
        }

    def scorer_for(self, organism: Organism) -> PhenodigmModelScorer:
        scorer = self.scorers.get(organism)
        if scorer is None:
            raise ValueError(f"No {organism.value} models are scored in this session.")
        return scorer

    def score_model(self, model: Model) -> ModelPhenotypeMatch:
        scorer: ModelScorer
        match model.organism:
            case Organism.HUMAN:
                scorer = self.scorer_for(Organism.HUMAN)
            case Organism.MOUSE:
                scorer = self.scorer_for(Organism.MOUSE)
            case Organism.FISH:
                scorer = self.scorer_for(Organism.FISH)
            case _ as unreachable:
                assert_never(unreachable)
        return scorer.score_model(model)

    def score_models(self, models: Iterable[Model], max_workers: Optional[int] = None) -> List[ModelPhenotypeMatch]:
        """
        Scores the models in parallel, returning the results in the same order as the input.
        """
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.score_model, models))


class PhenodigmContext:
    """
    Global context/singleton for accessing the Phenodigm services.
    """

    _instance: Optional["PhenodigmContext"] = None

    def __init__(self, config: PhenodigmConfig):
        configure_logging(config.log_level)
        logger.info(f"Initializing Phenodigm Context with pack: {config.pack_path}")
        self.config = config
        self.loader = PhenodigmLoader(config.pack_path)
        self.duckdb_conn = self.loader.load()

        self.ontology_service = CachingOntologyService(
            DuckDbOntologyService(self.duckdb_conn), data_version=self.loader.data_version
        )
        self.phenotype_match_service = PhenotypeMatchService(self.ontology_service)

    @classmethod
    def initialize(cls, config: PhenodigmConfig) -> None:
        cls._instance = cls(config)

    @classmethod
    def get_instance(cls) -> "PhenodigmContext":
        if cls._instance is None:
            raise RuntimeError("PhenodigmContext not initialized. Call initialize() first.")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.duckdb_conn.close()
        cls._instance = None


# --- Public API Functions ---


def initialize(config: Optional[PhenodigmConfig] = None) -> None:
    """Initializes the Phenodigm system, reading the configuration from the environment if none is given."""
    PhenodigmContext.initialize(config or PhenodigmConfig.from_env())


def phenodigm_session(
    query_terms: Iterable[str], organisms: Iterable[Organism] = (Organism.HUMAN,)
) -> PhenodigmSession:
    """
    Starts a ranking session for the query HPO ids. Obsolete ids are replaced by their current id.
    """
    ctx = PhenodigmContext.get_instance()
    current_ids = ctx.ontology_service.get_current_hpo_ids(query_terms)
    return PhenodigmSession(ctx.phenotype_match_service, current_ids, organisms)


def score_models(
    query_terms: Iterable[str], models: Iterable[Model], organisms: Iterable[Organism] = (Organism.HUMAN,)
) -> List[ModelPhenotypeMatch]:
    """
    Scores the models against the query HPO ids, returning the matches ordered by descending score.
    """
    session = phenodigm_session(query_terms, organisms)
    results = session.score_models(models, max_workers=PhenodigmContext.get_instance().config.max_workers)
    return sorted(results, key=lambda result: result.score, reverse=True)
