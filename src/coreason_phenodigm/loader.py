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
from typing import Union

import duckdb
from loguru import logger

from coreason_phenodigm.schemas import Manifest


class PhenodigmLoader:
    """
    Loads and verifies a Phenodigm data pack: a directory holding the precomputed phenotype
    mappings in phenodigm.duckdb and a manifest.json with their checksums.
    """

    DATABASE_FILE = "phenodigm.duckdb"

    def __init__(self, pack_path: Union[str, Path]):
        self.pack_path = Path(pack_path)
        if not self.pack_path.exists():
            raise FileNotFoundError(f"Phenodigm pack not found at: {self.pack_path}")

        self.manifest_path = self.pack_path / "manifest.json"
        self.manifest: Manifest | None = None

    @property
    def data_version(self) -> str:
        if not self.manifest:
            self.load_manifest()
        return self.manifest.version  # type: ignore[union-attr]

    def load_manifest(self) -> Manifest:
        """Loads and parses the manifest.json."""
        if not self.manifest_path.exists():
            raise FileNotFoundError(f"Manifest not found at: {self.manifest_path}")

        try:
            with open(self.manifest_path, "r") as f:
                data = json.load(f)
            self.manifest = Manifest(**data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in manifest: {e}") from e
        except Exception as e:
            raise ValueError(f"Failed to parse manifest: {e}") from e

        return self.manifest

    @staticmethod
    def compute_sha256(file_path: Path) -> str:
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def verify_integrity(self) -> bool:
        """
        Verifies the checksums of all artifacts listed in the manifest.
        Raises ValueError if the integrity check fails.
        """
        manifest = self.manifest or self.load_manifest()
        logger.info(f"Verifying integrity for Phenodigm pack: {manifest.version}")

        pack_root = self.pack_path.resolve()
        for filename, expected_hash in manifest.checksums.items():
            file_path = self.pack_path / filename

            if not file_path.resolve().is_relative_to(pack_root):
                raise ValueError(f"Security Violation: Path traversal detected in {filename}")

            if not file_path.exists():
                raise FileNotFoundError(f"Artifact not found: {filename}")

            if file_path.is_symlink():
                raise ValueError(f"Security Violation: Symlinks not allowed for artifact {filename}")

            calculated_hash = self.compute_sha256(file_path)
            if calculated_hash != expected_hash:
                logger.error(f"Checksum mismatch for {filename}. Expected {expected_hash}, got {calculated_hash}")
                raise ValueError(f"Integrity check failed for {filename}")

        logger.info("Integrity check passed.")
        return True

    def load(self) -> duckdb.DuckDBPyConnection:
        """
        Verifies integrity and returns a read-only connection to the phenodigm database.
        """
        self.verify_integrity()

        duckdb_path = self.pack_path / self.DATABASE_FILE
        if not duckdb_path.exists():
            raise FileNotFoundError(f"Phenodigm database not found at: {duckdb_path}")

        logger.info(f"Connecting to DuckDB at {duckdb_path}")
        try:
            con = duckdb.connect(str(duckdb_path), read_only=True)
            con.execute("SELECT 1")
        except Exception as e:
            logger.error(f"Failed to connect to DuckDB: {e}")
            raise ValueError(f"Failed to initialize DuckDB connection: {e}") from e

        return con
