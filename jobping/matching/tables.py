"""Reference tables for the scoring primitives.

Synonyms, career-path mappings and location data are plain data. They are
loaded into a :class:`MatchingTables` instance and passed to every scoring
function, so the primitives stay pure functions of (job, preferences, tables).
"""

import re
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from jobping.config.exceptions import ConfigurationError

DEFAULT_EXPERIENCE_LEVEL = 2

_TOKEN_SPLIT = re.compile(r"[^a-z0-9&]+")


def _norm(value: str) -> str:
    return value.strip().lower()


def _slug(value: str) -> str:
    return re.sub(r"[\s_]+", "-", _norm(value))


class CareerPathEntry(BaseModel):
    """One canonical career path."""

    label: str
    categories: List[str] = Field(default_factory=list)
    synonyms: List[str] = Field(default_factory=list)

    @field_validator("categories", "synonyms")
    @classmethod
    def lower_terms(cls, v: List[str]) -> List[str]:
        return [_norm(term) for term in v if term and term.strip()]


class MatchingTables(BaseModel):
    """All reference data used by scoring and filtering."""

    skill_synonyms: Dict[str, List[str]] = Field(default_factory=dict)
    career_paths: Dict[str, CareerPathEntry] = Field(default_factory=dict)
    career_path_aliases: Dict[str, str] = Field(default_factory=dict)
    european_hubs: List[str] = Field(default_factory=list)
    european_country_markers: List[str] = Field(default_factory=list)
    city_countries: Dict[str, str] = Field(default_factory=dict)
    country_aliases: Dict[str, str] = Field(default_factory=dict)
    experience_levels: Dict[str, int] = Field(default_factory=dict)

    @field_validator("skill_synonyms")
    @classmethod
    def lower_synonyms(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        return {_norm(k): [_norm(s) for s in syns] for k, syns in v.items()}

    @field_validator("career_path_aliases", "city_countries", "country_aliases")
    @classmethod
    def lower_mapping(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {_norm(k): _norm(val) for k, val in v.items()}

    @field_validator("career_paths")
    @classmethod
    def slug_paths(cls, v: Dict[str, CareerPathEntry]) -> Dict[str, CareerPathEntry]:
        return {_slug(k): entry for k, entry in v.items()}

    @field_validator("european_hubs", "european_country_markers")
    @classmethod
    def lower_list(cls, v: List[str]) -> List[str]:
        return [_norm(item) for item in v]

    @field_validator("experience_levels")
    @classmethod
    def slug_levels(cls, v: Dict[str, int]) -> Dict[str, int]:
        return {_slug(k): level for k, level in v.items()}

    # Career paths

    def resolve_career_path(self, path: Optional[str]) -> Optional[str]:
        """Canonical slug for a career path value, label or alias."""
        if not path or not path.strip():
            return None
        key = _norm(path)
        slug = _slug(path)
        if slug in self.career_paths:
            return slug
        if key in self.career_path_aliases:
            return self.career_path_aliases[key]
        for candidate, entry in self.career_paths.items():
            if _norm(entry.label) == key:
                return candidate
        return None

    def categories_for_path(self, path: str) -> List[str]:
        """Ingestion categories that map exactly onto a career path."""
        slug = self.resolve_career_path(path)
        if slug is None:
            return [_norm(path)]
        return self.career_paths[slug].categories

    def synonyms_for_path(self, path: str) -> List[str]:
        slug = self.resolve_career_path(path)
        if slug is None:
            return []
        return self.career_paths[slug].synonyms

    def category_matches_path(self, category: str, path: str) -> bool:
        """Whether a job category belongs to a career path.

        Single-word terms must match a whole token of the category so that
        short terms such as "it" do not match inside "digital".
        """
        if not category or not path:
            return False
        category_norm = _norm(category)
        tokens = set(_TOKEN_SPLIT.split(category_norm))
        for term in self.categories_for_path(path):
            if category_norm == term or term in tokens:
                return True
            if len(_TOKEN_SPLIT.split(term)) > 1 and term in category_norm:
                return True
        return False

    # Locations

    def country_for_city(self, city: Optional[str]) -> Optional[str]:
        if not city:
            return None
        return self.city_countries.get(_norm(city))

    def normalize_country(self, country: Optional[str]) -> Optional[str]:
        if not country:
            return None
        key = _norm(country)
        return self.country_aliases.get(key, key)

    def is_european_hub(self, city: Optional[str]) -> bool:
        return bool(city) and _norm(city) in self.european_hubs

    def is_european_country(self, country: Optional[str]) -> bool:
        if not country:
            return False
        key = _norm(country)
        return any(marker in key for marker in self.european_country_markers)

    # Experience

    def experience_ordinal(self, label: Optional[str]) -> Optional[int]:
        """Ordinal seniority for a label; None when unspecified, 2 when unknown."""
        if not label or not label.strip():
            return None
        return self.experience_levels.get(_slug(label), DEFAULT_EXPERIENCE_LEVEL)


def _read_tables_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Matching tables file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse matching tables {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Matching tables file must contain a mapping: {path}")
    return data


@lru_cache(maxsize=1)
def _default_tables_dict() -> Dict[str, Any]:
    text = resources.files("jobping.matching").joinpath("default_tables.yaml").read_text()
    return yaml.safe_load(text)


def load_tables(override_path: Optional[Path] = None) -> MatchingTables:
    """Build the matching tables from packaged defaults plus an optional override.

    Each top-level section present in the override file replaces the
    corresponding default section wholesale.

    Raises:
        ConfigurationError: If the override file is missing or invalid
    """
    data = dict(_default_tables_dict())
    if override_path is not None:
        data.update(_read_tables_file(Path(override_path)))

    try:
        return MatchingTables.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            "Matching tables validation failed",
            errors=[f"{' -> '.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )


@lru_cache(maxsize=1)
def default_tables() -> MatchingTables:
    """Shared instance built from the packaged defaults."""
    return load_tables()
