# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

from typing import Annotated, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

from coreason_phenodigm.schemas import Organism, PhenotypeMatch


class Model(BaseModel):
    """
    A phenotypic profile of a candidate gene to be ranked against the query phenotypes.

    Holds the identity of the model, the human gene it is associated with and the ids of
    its phenotype annotations (HP, MP or ZP ids depending on the organism).
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    organism: Organism
    entrez_gene_id: int
    gene_symbol: str
    label: str = ""
    phenotype_ids: Tuple[str, ...] = ()


class DiseaseModel(Model):
    """
    A human disease associated with a gene, e.g. an OMIM or Orphanet entry.
    """

    model_type: Literal["disease"] = "disease"
    organism: Organism = Organism.HUMAN
    disease_id: str


class GeneOrthologModel(Model):
    """
    A mouse or zebrafish ortholog of a human gene, annotated with MP or ZP phenotypes.
    """

    model_type: Literal["ortholog"] = "ortholog"
    model_gene_id: str


class GeneModel(Model):
    model_type: Literal["gene"] = "gene"


AnyModel = Annotated[Union[DiseaseModel, GeneOrthologModel, GeneModel], Field(discriminator="model_type")]


class ModelPhenotypeMatch(BaseModel):
    """
    The phenotypic similarity score of a model against the query phenotypes, together with the
    phenotype matches supporting it.
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    model: SerializeAsAny[Model]
    best_phenotype_matches: Tuple[PhenotypeMatch, ...] = ()

    @property
    def organism(self) -> Organism:
        return self.model.organism

    @property
    def gene_symbol(self) -> str:
        return self.model.gene_symbol
