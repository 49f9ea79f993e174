# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

import hashlib
import json
from pathlib import Path
from typing import Dict, Generator, List, Tuple

import duckdb
import pytest

from coreason_phenodigm.ontology import InMemoryOntologyService, clear_ontology_cache
from coreason_phenodigm.schemas import Organism, PhenotypeMatch, PhenotypeTerm
from coreason_phenodigm.service import PhenotypeMatchService

# --- Nose/toe ontology ---
#
# Two query phenotypes, a nose and a toe abnormality, matched against all three ontologies.
# Scores are sqrt(jaccard * ic) with values chosen to be exact in binary floating point:
#
#   HP:0005105 nose  -> HP:0005105 4.0, HP:0000118 1.0, MP:0000445 2.0, ZP:0000001 1.0
#   HP:0001780 toe   -> HP:0001780 4.0, HP:0000118 1.0, MP:0000572 1.5, MP:0002109 1.0
#
# HP:0000005 is an obsolete id for the nose term.

TERMS: Dict[Organism, List[Tuple[str, str]]] = {
    Organism.HUMAN: [
        ("HP:0005105", "Abnormal nasal morphology"),
        ("HP:0001780", "Abnormality of the toe"),
        ("HP:0000118", "Phenotypic abnormality"),
        ("HP:0000707", "Abnormality of the nervous system"),
    ],
    Organism.MOUSE: [
        ("MP:0000445", "short snout"),
        ("MP:0000572", "abnormal autopod morphology"),
        ("MP:0002109", "abnormal limb morphology"),
    ],
    Organism.FISH: [
        ("ZP:0000001", "head decreased size, abnormal"),
    ],
}

# query id, match id, jaccard, ic, lcs id
MAPPINGS: Dict[Organism, List[Tuple[str, str, float, float, str]]] = {
    Organism.HUMAN: [
        ("HP:0005105", "HP:0005105", 1.0, 16.0, "HP:0005105"),
        ("HP:0005105", "HP:0000118", 0.5, 2.0, "HP:0000118"),
        ("HP:0001780", "HP:0001780", 1.0, 16.0, "HP:0001780"),
        ("HP:0001780", "HP:0000118", 0.5, 2.0, "HP:0000118"),
    ],
    Organism.MOUSE: [
        ("HP:0005105", "MP:0000445", 0.5, 8.0, "HP:0005105"),
        ("HP:0001780", "MP:0000572", 0.25, 9.0, "HP:0001780"),
        ("HP:0001780", "MP:0002109", 0.5, 2.0, "HP:0000118"),
    ],
    Organism.FISH: [
        ("HP:0005105", "ZP:0000001", 0.5, 2.0, "HP:0000118"),
    ],
}

ALT_IDS = {"HP:0000005": "HP:0005105"}

DATA_VERSION = "vTest_2025_01"


def _labels() -> Dict[str, str]:
    return {term_id: label for terms in TERMS.values() for term_id, label in terms}


def make_phenotype_match(query_id: str, match_id: str, jaccard: float, ic: float, lcs_id: str) -> PhenotypeMatch:
    labels = _labels()
    return PhenotypeMatch(
        query_phenotype=PhenotypeTerm.of(query_id, labels.get(query_id, "")),
        match_phenotype=PhenotypeTerm.of(match_id, labels.get(match_id, "")),
        lcs=PhenotypeTerm.of(lcs_id, labels.get(lcs_id, "")),
        jaccard=jaccard,
        information_content=ic,
    )


# --- Fixtures ---


@pytest.fixture(autouse=True)
def reset_ontology_cache() -> Generator[None, None, None]:
    clear_ontology_cache()
    yield
    clear_ontology_cache()


@pytest.fixture
def ontology_service() -> InMemoryOntologyService:
    return InMemoryOntologyService(
        terms={
            organism: [PhenotypeTerm.of(term_id, label) for term_id, label in terms]
            for organism, terms in TERMS.items()
        },
        mappings={organism: [make_phenotype_match(*row) for row in rows] for organism, rows in MAPPINGS.items()},
        alt_ids=ALT_IDS,
    )


@pytest.fixture
def phenotype_match_service(ontology_service: InMemoryOntologyService) -> PhenotypeMatchService:
    return PhenotypeMatchService(ontology_service)


@pytest.fixture
def nose_and_toe() -> List[str]:
    return ["HP:0005105", "HP:0001780"]


def _compute_file_hash(p: Path) -> str:
    sha256 = hashlib.sha256()
    with open(p, "rb") as f:
        for b in iter(lambda: f.read(4096), b""):
            sha256.update(b)
    return sha256.hexdigest()


@pytest.fixture
def synthetic_phenodigm_pack(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary Phenodigm pack with:
    - phenodigm.duckdb (terms, alt ids and the HP-HP, HP-MP and HP-ZP mappings of the nose/toe ontology)
    - manifest.json
    """
    pack_dir = tmp_path / "phenodigm_vtest"
    pack_dir.mkdir()

    db_path = pack_dir / "phenodigm.duckdb"
    con = duckdb.connect(str(db_path))

    labels = _labels()
    term_tables = {Organism.HUMAN: "hp_terms", Organism.MOUSE: "mp_terms", Organism.FISH: "zp_terms"}
    mapping_tables = {
        Organism.HUMAN: "hp_hp_mappings",
        Organism.MOUSE: "hp_mp_mappings",
        Organism.FISH: "hp_zp_mappings",
    }

    for organism, table in term_tables.items():
        con.execute(f"CREATE TABLE {table} (id VARCHAR, label VARCHAR)")
        con.executemany(f"INSERT INTO {table} VALUES (?, ?)", TERMS[organism])

    con.execute("CREATE TABLE hp_alt_ids (alt_id VARCHAR, primary_id VARCHAR)")
    con.executemany("INSERT INTO hp_alt_ids VALUES (?, ?)", list(ALT_IDS.items()))

    for organism, table in mapping_tables.items():
        con.execute(f"""
            CREATE TABLE {table} (
                query_id VARCHAR,
                query_label VARCHAR,
                match_id VARCHAR,
                match_label VARCHAR,
                simj DOUBLE,
                ic DOUBLE,
                lcs_id VARCHAR,
                lcs_label VARCHAR
            )
        """)
        rows = [
            (query_id, labels[query_id], match_id, labels[match_id], jaccard, ic, lcs_id, labels[lcs_id])
            for query_id, match_id, jaccard, ic, lcs_id in MAPPINGS[organism]
        ]
        con.executemany(f"INSERT INTO {table} VALUES (?, ?, ?, ?, ?, ?, ?, ?)", rows)

    con.close()

    manifest_data = {
        "version": DATA_VERSION,
        "source_date": "2025-01-01",
        "checksums": {"phenodigm.duckdb": _compute_file_hash(db_path)},
    }
    with open(pack_dir / "manifest.json", "w") as f:
        json.dump(manifest_data, f, indent=2)

    yield pack_dir
