# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

"""
coreason-phenodigm
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .config import PhenodigmConfig
from .loader import PhenodigmLoader
from .matcher import OrganismPhenotypeMatcher
from .models import DiseaseModel, GeneModel, GeneOrthologModel, Model, ModelPhenotypeMatch
from .ontology import CachingOntologyService, DuckDbOntologyService, InMemoryOntologyService
from .pipeline import PhenodigmSession, initialize, phenodigm_session, score_models
from .schemas import Organism, PhenotypeMatch, PhenotypeTerm, TheoreticalModel
from .scorer import PhenodigmModelScorer
from .service import PhenotypeMatchService

__all__ = [
    "Organism",
    "PhenotypeTerm",
    "PhenotypeMatch",
    "TheoreticalModel",
    "Model",
    "DiseaseModel",
    "GeneOrthologModel",
    "GeneModel",
    "ModelPhenotypeMatch",
    "OrganismPhenotypeMatcher",
    "PhenodigmModelScorer",
    "PhenotypeMatchService",
    "InMemoryOntologyService",
    "DuckDbOntologyService",
    "CachingOntologyService",
    "PhenodigmLoader",
    "PhenodigmConfig",
    "PhenodigmSession",
    "initialize",
    "phenodigm_session",
    "score_models",
]
