# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

import json
from pathlib import Path
from unittest.mock import patch

import duckdb
import pytest

from coreason_phenodigm.loader import PhenodigmLoader


def test_loader_init(synthetic_phenodigm_pack: Path) -> None:
    """Test loader initialization."""
    loader = PhenodigmLoader(synthetic_phenodigm_pack)
    assert loader.pack_path == synthetic_phenodigm_pack
    assert loader.manifest is None


def test_load_manifest(synthetic_phenodigm_pack: Path) -> None:
    loader = PhenodigmLoader(synthetic_phenodigm_pack)
    manifest = loader.load_manifest()
    assert manifest.version == "vTest_2025_01"
    assert "phenodigm.duckdb" in manifest.checksums
    assert loader.data_version == "vTest_2025_01"


def test_data_version_loads_manifest(synthetic_phenodigm_pack: Path) -> None:
    assert PhenodigmLoader(synthetic_phenodigm_pack).data_version == "vTest_2025_01"


def test_verify_integrity(synthetic_phenodigm_pack: Path) -> None:
    assert PhenodigmLoader(synthetic_phenodigm_pack).verify_integrity() is True


def test_load(synthetic_phenodigm_pack: Path) -> None:
    con = PhenodigmLoader(synthetic_phenodigm_pack).load()
    try:
        assert con.execute("SELECT count(*) FROM hp_mp_mappings").fetchone() == (3,)
        # read-only
        with pytest.raises(duckdb.Error):
            con.execute("DELETE FROM hp_terms")
    finally:
        con.close()


def test_loader_pack_not_found() -> None:
    with pytest.raises(FileNotFoundError, match="Phenodigm pack not found"):
        PhenodigmLoader("/non/existent/path")


def test_loader_manifest_not_found(tmp_path: Path) -> None:
    loader = PhenodigmLoader(tmp_path)
    with pytest.raises(FileNotFoundError, match="Manifest not found"):
        loader.load_manifest()


def test_loader_invalid_json(tmp_path: Path) -> None:
    (tmp_path / "manifest.json").write_text("{invalid_json")
    loader = PhenodigmLoader(tmp_path)
    with pytest.raises(ValueError, match="Invalid JSON"):
        loader.load_manifest()


def test_loader_manifest_parse_error(tmp_path: Path) -> None:
    # Valid JSON but missing fields
    (tmp_path / "manifest.json").write_text("{}")
    loader = PhenodigmLoader(tmp_path)
    with pytest.raises(ValueError, match="Failed to parse manifest"):
        loader.load_manifest()


def test_loader_verify_checksum_mismatch(synthetic_phenodigm_pack: Path) -> None:
    with open(synthetic_phenodigm_pack / "phenodigm.duckdb", "wb") as f:
        f.write(b"corrupted_data")

    loader = PhenodigmLoader(synthetic_phenodigm_pack)
    with pytest.raises(ValueError, match="Integrity check failed for phenodigm.duckdb"):
        loader.verify_integrity()


def test_loader_verify_artifact_missing(synthetic_phenodigm_pack: Path) -> None:
    (synthetic_phenodigm_pack / "phenodigm.duckdb").unlink()

    loader = PhenodigmLoader(synthetic_phenodigm_pack)
    with pytest.raises(FileNotFoundError, match="Artifact not found"):
        loader.verify_integrity()


def _write_manifest(pack_path: Path, checksums: dict) -> None:
    with open(pack_path / "manifest.json", "w") as f:
        json.dump({"version": "v1", "source_date": "2025-01-01", "checksums": checksums}, f)


def test_loader_rejects_path_traversal(tmp_path: Path) -> None:
    pack_path = tmp_path / "pack"
    pack_path.mkdir()
    (tmp_path / "outside.duckdb").write_bytes(b"data")
    _write_manifest(pack_path, {"../outside.duckdb": PhenodigmLoader.compute_sha256(tmp_path / "outside.duckdb")})

    with pytest.raises(ValueError, match="Path traversal"):
        PhenodigmLoader(pack_path).verify_integrity()


def test_loader_rejects_symlinks(tmp_path: Path) -> None:
    pack_path = tmp_path / "pack"
    pack_path.mkdir()
    target = pack_path / "real.duckdb"
    target.write_bytes(b"data")
    (pack_path / "phenodigm.duckdb").symlink_to(target)
    _write_manifest(pack_path, {"phenodigm.duckdb": PhenodigmLoader.compute_sha256(target)})

    with pytest.raises(ValueError, match="Symlinks not allowed"):
        PhenodigmLoader(pack_path).verify_integrity()


def test_load_database_missing(tmp_path: Path) -> None:
    _write_manifest(tmp_path, {})
    with pytest.raises(FileNotFoundError, match="Phenodigm database not found"):
        PhenodigmLoader(tmp_path).load()


def test_load_connection_failure(synthetic_phenodigm_pack: Path) -> None:
    with patch("coreason_phenodigm.loader.duckdb.connect", side_effect=duckdb.IOException("locked")):
        with pytest.raises(ValueError, match="Failed to initialize DuckDB connection"):
            PhenodigmLoader(synthetic_phenodigm_pack).load()
