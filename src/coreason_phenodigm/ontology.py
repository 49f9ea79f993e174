# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

import threading
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import duckdb
from loguru import logger

from coreason_phenodigm.interfaces import OntologyService
from coreason_phenodigm.schemas import Organism, PhenotypeMatch, PhenotypeTerm


def _resolve_current_ids(hpo_ids: Iterable[str], alt_ids: Mapping[str, str]) -> List[str]:
    current_ids = (alt_ids.get(hpo_id, hpo_id) for hpo_id in hpo_ids)
    return list(dict.fromkeys(current_ids))


class InMemoryOntologyService:
    """
    OntologyService backed by in-memory collections of terms and phenotype matches.
    """

    def __init__(
        self,
        terms: Mapping[Organism, Iterable[PhenotypeTerm]],
        mappings: Mapping[Organism, Iterable[PhenotypeMatch]],
        alt_ids: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            terms: The ontology terms of each organism.
            mappings: The HP-HP, HP-MP and HP-ZP phenotype matches keyed by the organism of the matched term.
            alt_ids: Obsolete or alternate HPO id -> current primary HPO id.
        """
        self._terms: Dict[Organism, FrozenSet[PhenotypeTerm]] = {
            organism: frozenset(terms.get(organism, ())) for organism in Organism
        }
        self._hpo_terms_by_id = {term.id: term for term in self._terms[Organism.HUMAN]}
        self._alt_ids = dict(alt_ids or {})

        matches_by_query: Dict[Tuple[Organism, str], set] = {}
        for organism, matches in mappings.items():
            for match in matches:
                matches_by_query.setdefault((organism, match.query_phenotype_id), set()).add(match)
        self._matches = {key: frozenset(value) for key, value in matches_by_query.items()}

    def get_terms(self, organism: Organism) -> FrozenSet[PhenotypeTerm]:
        return self._terms[organism]

    def get_matches_for(self, organism: Organism, hpo_id: str) -> FrozenSet[PhenotypeMatch]:
        return self._matches.get((organism, hpo_id), frozenset())

    def get_phenotype_term_for_hpo_id(self, hpo_id: str) -> Optional[PhenotypeTerm]:
        return self._hpo_terms_by_id.get(self._alt_ids.get(hpo_id, hpo_id))

    def get_current_hpo_ids(self, hpo_ids: Iterable[str]) -> List[str]:
        return _resolve_current_ids(hpo_ids, self._alt_ids)


class DuckDbOntologyService:
    """
    OntologyService reading the precomputed phenotype mappings from a read-only DuckDB connection.

    Expected tables:
    - hp_terms, mp_terms, zp_terms (id, label)
    - hp_alt_ids (alt_id, primary_id)
    - hp_hp_mappings, hp_mp_mappings, hp_zp_mappings
      (query_id, query_label, match_id, match_label, simj, ic, lcs_id, lcs_label)
    """

    TERM_TABLES = {Organism.HUMAN: "hp_terms", Organism.MOUSE: "mp_terms", Organism.FISH: "zp_terms"}
    MAPPING_TABLES = {
        Organism.HUMAN: "hp_hp_mappings",
        Organism.MOUSE: "hp_mp_mappings",
        Organism.FISH: "hp_zp_mappings",
    }
    ALT_ID_TABLE = "hp_alt_ids"

    def __init__(self, duckdb_conn: duckdb.DuckDBPyConnection):
        self.duckdb_conn = duckdb_conn

        # Verify tables exist
        for table in [*self.TERM_TABLES.values(), *self.MAPPING_TABLES.values(), self.ALT_ID_TABLE]:
            try:
                self.duckdb_conn.execute(f"SELECT 1 FROM {table} LIMIT 1")
            except Exception as e:
                logger.error(f"Table '{table}' not found or invalid: {e}")
                raise ValueError(f"Table '{table}' is missing in the phenodigm data.") from e

        self._alt_ids = self._load_alt_ids()

    def _load_alt_ids(self) -> Dict[str, str]:
        rows = self.duckdb_conn.execute(f"SELECT alt_id, primary_id FROM {self.ALT_ID_TABLE}").fetchall()
        return {row[0]: row[1] for row in rows}

    def get_terms(self, organism: Organism) -> FrozenSet[PhenotypeTerm]:
        query = f"SELECT id, label FROM {self.TERM_TABLES[organism]}"
        try:
            rows = self.duckdb_conn.execute(query).fetchall()
            return frozenset(PhenotypeTerm(id=row[0], label=row[1] or "") for row in rows)
        except Exception as e:
            logger.error(f"Error fetching {organism.value} terms: {e}")
            return frozenset()

    def get_matches_for(self, organism: Organism, hpo_id: str) -> FrozenSet[PhenotypeMatch]:
        query = f"""
            SELECT query_id, query_label, match_id, match_label, simj, ic, lcs_id, lcs_label
            FROM {self.MAPPING_TABLES[organism]}
            WHERE query_id = ?
        """
        try:
            rows = self.duckdb_conn.execute(query, [hpo_id]).fetchall()
            return frozenset(self._match_from_row(row) for row in rows)
        except Exception as e:
            logger.error(f"Error fetching {organism.value} phenotype matches for {hpo_id}: {e}")
            return frozenset()

    @staticmethod
    def _match_from_row(row: Tuple[Any, ...]) -> PhenotypeMatch:
        # Row order: query id, query label, match id, match label, simj, ic, lcs id, lcs label
        lcs = PhenotypeTerm(id=row[6], label=row[7] or "") if row[6] else None
        return PhenotypeMatch(
            query_phenotype=PhenotypeTerm(id=row[0], label=row[1] or ""),
            match_phenotype=PhenotypeTerm(id=row[2], label=row[3] or ""),
            lcs=lcs,
            jaccard=row[4],
            information_content=row[5],
        )

    def get_phenotype_term_for_hpo_id(self, hpo_id: str) -> Optional[PhenotypeTerm]:
        current_id = self._alt_ids.get(hpo_id, hpo_id)
        try:
            row = self.duckdb_conn.execute(
                f"SELECT id, label FROM {self.TERM_TABLES[Organism.HUMAN]} WHERE id = ?", [current_id]
            ).fetchone()
        except Exception as e:
            logger.error(f"Error fetching HPO term {hpo_id}: {e}")
            return None
        if row is None:
            return None
        return PhenotypeTerm(id=row[0], label=row[1] or "")

    def get_current_hpo_ids(self, hpo_ids: Iterable[str]) -> List[str]:
        return _resolve_current_ids(hpo_ids, self._alt_ids)


# data version -> (organism, hpo id) -> matches
_MATCH_CACHE: Dict[str, Dict[Tuple[Organism, str], FrozenSet[PhenotypeMatch]]] = {}
# data version -> organism -> terms
_TERM_CACHE: Dict[str, Dict[Organism, FrozenSet[PhenotypeTerm]]] = {}
_CACHE_LOCK = threading.Lock()


def clear_ontology_cache() -> None:
    """Empties the process-wide ontology cache for all data versions."""
    with _CACHE_LOCK:
        # live services hold the inner dicts
        for matches in _MATCH_CACHE.values():
            matches.clear()
        for terms in _TERM_CACHE.values():
            terms.clear()
        _MATCH_CACHE.clear()
        _TERM_CACHE.clear()


class CachingOntologyService:
    """
    Read-through cache over another OntologyService, shared by the whole process and keyed by the
    version of the ontology data. Entries are populated once and never invalidated, so a new data
    version must use a new key.
    """

    def __init__(self, delegate: OntologyService, data_version: str):
        self.delegate = delegate
        self.data_version = data_version
        with _CACHE_LOCK:
            self._matches = _MATCH_CACHE.setdefault(data_version, {})
            self._terms = _TERM_CACHE.setdefault(data_version, {})

    def get_terms(self, organism: Organism) -> FrozenSet[PhenotypeTerm]:
        terms = self._terms.get(organism)
        if terms is None:
            with _CACHE_LOCK:
                terms = self._terms.get(organism)
                if terms is None:
                    terms = self.delegate.get_terms(organism)
                    self._terms[organism] = terms
                    logger.info(f"Cached {len(terms)} {organism.value} terms for data version {self.data_version}")
        return terms

    def get_matches_for(self, organism: Organism, hpo_id: str) -> FrozenSet[PhenotypeMatch]:
        key = (organism, hpo_id)
        matches = self._matches.get(key)
        if matches is None:
            with _CACHE_LOCK:
                matches = self._matches.get(key)
                if matches is None:
                    matches = self.delegate.get_matches_for(organism, hpo_id)
                    self._matches[key] = matches
        return matches

    def get_phenotype_term_for_hpo_id(self, hpo_id: str) -> Optional[PhenotypeTerm]:
        return self.delegate.get_phenotype_term_for_hpo_id(hpo_id)

    def get_current_hpo_ids(self, hpo_ids: Iterable[str]) -> List[str]:
        return self.delegate.get_current_hpo_ids(hpo_ids)
