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
Reader for the term-pair similarity caches produced offline by OWLSim.

Each record is a single tab-separated line:

    sourceId <TAB> targetId <TAB> jaccard <TAB> informationContent <TAB> ancestorIds;

where ancestorIds is a ';'-separated list of the common ancestor ids, most informative first.
"""

import math
from pathlib import Path
from typing import Iterator, List, Mapping, Tuple, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from coreason_phenodigm.schemas import PhenotypeMatch, PhenotypeTerm


def calculate_combined_score(jaccard: float, information_content: float) -> float:
    return math.sqrt(jaccard * information_content)


class OwlSimRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    target_id: str
    jaccard: float = Field(ge=0.0, le=1.0)
    information_content: float = Field(ge=0.0)
    ancestor_ids: Tuple[str, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def combined_score(self) -> float:
        return calculate_combined_score(self.jaccard, self.information_content)


def parse_owlsim_line(line: str) -> OwlSimRecord:
    """
    Parses a single OWLSim cache record.

    Raises:
        ValueError: if the line does not hold a valid record.
    """
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < 4:
        raise ValueError(f"Malformed OWLSim record, expected at least 4 fields: {line!r}")

    ancestors = fields[4] if len(fields) > 4 else ""
    ancestor_ids = tuple(ancestor.strip() for ancestor in ancestors.split(";") if ancestor.strip())
    try:
        return OwlSimRecord(
            source_id=fields[0].strip(),
            target_id=fields[1].strip(),
            jaccard=float(fields[2]),
            information_content=float(fields[3]),
            ancestor_ids=ancestor_ids,
        )
    except (ValueError, ValidationError) as e:
        raise ValueError(f"Malformed OWLSim record {line!r}: {e}") from e


def read_owlsim_cache(path: Union[str, Path]) -> Iterator[OwlSimRecord]:
    """Yields the records of an OWLSim cache file, skipping blank and comment lines."""
    cache_path = Path(path)
    if not cache_path.exists():
        raise FileNotFoundError(f"OWLSim cache not found at: {cache_path}")

    logger.info(f"Reading OWLSim cache {cache_path}")
    with open(cache_path, "r") as f:
        for line in f:
            if not line.strip() or line.startswith("#"):
                continue
            yield parse_owlsim_line(line)


def to_phenotype_match(record: OwlSimRecord, terms: Mapping[str, PhenotypeTerm]) -> PhenotypeMatch:
    """
    Converts a record into a PhenotypeMatch, taking the term labels from the given lookup.
    The first ancestor is used as the lcs.
    """

    def term_for(term_id: str) -> PhenotypeTerm:
        return terms.get(term_id) or PhenotypeTerm(id=term_id)

    lcs = term_for(record.ancestor_ids[0]) if record.ancestor_ids else None
    return PhenotypeMatch(
        query_phenotype=term_for(record.source_id),
        match_phenotype=term_for(record.target_id),
        lcs=lcs,
        jaccard=record.jaccard,
        information_content=record.information_content,
    )


def load_phenotype_matches(path: Union[str, Path], terms: Mapping[str, PhenotypeTerm]) -> List[PhenotypeMatch]:
    matches = [to_phenotype_match(record, terms) for record in read_owlsim_cache(path)]
    logger.info(f"Loaded {len(matches)} phenotype matches from {path}")
    return matches
