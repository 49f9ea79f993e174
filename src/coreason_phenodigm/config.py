# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_phenodigm

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class PhenodigmConfig(BaseModel):
    """Runtime configuration for the Phenodigm context."""

    pack_path: Path = Field(..., description="Directory of the Phenodigm data pack")
    log_level: str = Field(default="INFO", description="loguru level for the stderr sink")
    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Threads used to score models in parallel. None lets the executor decide.",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls) -> "PhenodigmConfig":
        """
        Builds the configuration from the PHENODIGM_PACK_PATH, PHENODIGM_LOG_LEVEL and
        PHENODIGM_MAX_WORKERS environment variables.
        """
        pack_path = os.getenv("PHENODIGM_PACK_PATH")
        if not pack_path:
            raise ValueError("PHENODIGM_PACK_PATH is not set.")

        max_workers = os.getenv("PHENODIGM_MAX_WORKERS")
        return cls(
            pack_path=Path(pack_path),
            log_level=os.getenv("PHENODIGM_LOG_LEVEL", "INFO"),
            max_workers=int(max_workers) if max_workers else None,
        )
