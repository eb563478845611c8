"""
Analysis settings.

The business-rule variants found across the old dashboards (top-N sizes,
week-scoped matching, alias tables) are options here instead of code paths.
"""

import os
from typing import ClassVar, Literal

from pydantic import BaseModel, Field


class AnalysisConfig(BaseModel):
    """Options for one reconciliation + aggregation pass."""

    top_products: int = Field(default=10, ge=1, description="Rows in the product rollup")
    top_sections: int = Field(default=10, ge=1, description="Rows in the section rollup")
    top_critical_products: int = Field(default=5, ge=1)
    week_scoped_matching: bool = Field(
        default=True,
        description="Only match 14:00 and 18:00 records of the same week",
    )
    checkpoint_from_source_sheet: bool = Field(
        default=True,
        description="Use the 14H/18H import sheet when the checkpoint text is unclear",
    )
    auto_classify_shortage_type: bool = Field(
        default=True,
        description="Infer a blank shortage type from stock levels",
    )
    locale: Literal["pt", "en"] = "pt"
    section_aliases: dict[str, str] = Field(default_factory=dict)

    ENV_PREFIX: ClassVar[str] = "RUPTURA_"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AnalysisConfig":
        """
        Build settings from RUPTURA_* environment variables.

        Unset variables keep their defaults. Invalid values raise
        pydantic.ValidationError.
        """
        environ = os.environ if environ is None else environ
        env_fields = {
            "TOP_PRODUCTS": "top_products",
            "TOP_SECTIONS": "top_sections",
            "TOP_CRITICAL": "top_critical_products",
            "WEEK_SCOPED": "week_scoped_matching",
            "LOCALE": "locale",
        }
        values = {
            field: environ[cls.ENV_PREFIX + name]
            for name, field in env_fields.items()
            if cls.ENV_PREFIX + name in environ
        }
        return cls.model_validate(values)
