from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field


class Configuration(BaseModel):
    # Catalog
    catalog_path: Optional[str] = Field(default=None)

    # Selection defaults
    default_radius_m: float = Field(default=3218.69)  # 2 miles
    max_radius_m: float = Field(default=50000.0)
    default_min_rating: float = Field(default=3.0)
    exclude_closed_default: bool = Field(default=True)

    # Fixed seed for reproducible draws; unset means a fresh generator per call
    random_seed: Optional[int] = Field(default=None)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "catalog_path": os.getenv("CATALOG_PATH"),
            "default_radius_m": os.getenv("DEFAULT_RADIUS_M"),
            "max_radius_m": os.getenv("MAX_RADIUS_M"),
            "default_min_rating": os.getenv("DEFAULT_MIN_RATING"),
            "exclude_closed_default": os.getenv("EXCLUDE_CLOSED_DEFAULT"),
            "random_seed": os.getenv("RANDOM_SEED"),
        }

        bool_fields = {"exclude_closed_default"}

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_catalog(self) -> None:
        if not self.catalog_path:
            raise ValueError("CATALOG_PATH is required")

    def log_summary(self) -> str:
        return (
            "catalog=%s radius_m=%s max_radius_m=%s min_rating=%s exclude_closed=%s seed=%s"
            % (
                self.catalog_path or "unset",
                self.default_radius_m,
                self.max_radius_m,
                self.default_min_rating,
                self.exclude_closed_default,
                "unset" if self.random_seed is None else self.random_seed,
            )
        )
