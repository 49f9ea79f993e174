# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

import math
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Organism(str, Enum):
    HUMAN = "HUMAN"
    MOUSE = "MOUSE"
    FISH = "FISH"

    @property
    def ncbi_taxon_id(self) -> str:
        return NCBI_TAXON_IDS[self]

    @property
    def species_name(self) -> str:
        return SPECIES_NAMES[self]

    @property
    def ontology_prefix(self) -> str:
        return ONTOLOGY_PREFIXES[self]

    @classmethod
    def from_ncbi_taxon_id(cls, taxon_id: str) -> "Organism":
        try:
            return ORGANISMS_BY_TAXON_ID[str(taxon_id)]
        except KeyError as e:
            raise ValueError(f"Unsupported NCBI taxon id: {taxon_id}") from e


NCBI_TAXON_IDS: Mapping[Organism, str] = MappingProxyType(
    {Organism.HUMAN: "9606", Organism.MOUSE: "10090", Organism.FISH: "7955"}
)

SPECIES_NAMES: Mapping[Organism, str] = MappingProxyType(
    {Organism.HUMAN: "Homo sapiens", Organism.MOUSE: "Mus musculus", Organism.FISH: "Danio rerio"}
)

ONTOLOGY_PREFIXES: Mapping[Organism, str] = MappingProxyType(
    {Organism.HUMAN: "HP", Organism.MOUSE: "MP", Organism.FISH: "ZP"}
)

ORGANISMS_BY_TAXON_ID: Mapping[str, Organism] = MappingProxyType(
    {taxon_id: organism for organism, taxon_id in NCBI_TAXON_IDS.items()}
)


class PhenotypeTerm(BaseModel):
    """
    A term from one of the phenotype ontologies (HP, MP or ZP).

    Two terms are equal when their ids are equal, regardless of label.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""

    @classmethod
    def of(cls, id: str, label: str = "") -> "PhenotypeTerm":
        return cls(id=id, label=label)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, PhenotypeTerm):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class PhenotypeMatch(BaseModel):
    """
    A precomputed similarity between a query phenotype and a matched phenotype.

    The score is the geometric mean of the Jaccard similarity and the information
    content of the most informative common ancestor (lcs).
    """

    model_config = ConfigDict(frozen=True)

    query_phenotype: PhenotypeTerm
    match_phenotype: PhenotypeTerm
    lcs: Optional[PhenotypeTerm] = None
    jaccard: float = Field(ge=0.0, le=1.0)
    information_content: float = Field(ge=0.0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def score(self) -> float:
        return math.sqrt(self.jaccard * self.information_content)

    @property
    def query_phenotype_id(self) -> str:
        return self.query_phenotype.id

    @property
    def query_phenotype_label(self) -> str:
        return self.query_phenotype.label

    @property
    def match_phenotype_id(self) -> str:
        return self.match_phenotype.id

    @property
    def match_phenotype_label(self) -> str:
        return self.match_phenotype.label


class PhenodigmMatchRawScore(BaseModel):
    """
    The un-normalised result of matching a list of model phenotypes against the query phenotypes.
    """

    model_config = ConfigDict(frozen=True)

    max_model_match_score: float = 0.0
    sum_model_best_match_scores: float = 0.0
    matching_phenotypes: Tuple[str, ...] = ()
    best_phenotype_matches: Tuple[PhenotypeMatch, ...] = ()


class TheoreticalModel(BaseModel):
    """
    The best model theoretically possible for a set of query terms in an organism. Used as the
    ceiling against which real models are normalised.
    """

    model_config = ConfigDict(frozen=True)

    organism: Organism
    query_term_ids: Tuple[str, ...] = ()
    phenotype_ids: Tuple[str, ...] = ()
    best_phenotype_matches: Tuple[PhenotypeMatch, ...] = ()
    raw_score: PhenodigmMatchRawScore = PhenodigmMatchRawScore()

    @property
    def num_query_terms(self) -> int:
        return len(self.query_term_ids)

    @property
    def max_match_score(self) -> float:
        return self.raw_score.max_model_match_score

    @property
    def best_avg_score(self) -> float:
        total_phenotypes = self.num_query_terms + len(self.raw_score.matching_phenotypes)
        if total_phenotypes == 0:
            return 0.0
        return self.raw_score.sum_model_best_match_scores / total_phenotypes


class Manifest(BaseModel):
    version: str
    source_date: str
    checksums: Dict[str, str]
