"""
Configuration for the N-gram Miner
Thresholds, n-gram sizes and stop words, validated with pydantic and passed
explicitly into every analysis run.
"""

from typing import Any, FrozenSet, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


DEFAULT_STOP_WORDS = frozenset([
    'a', 'an', 'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'been',
    'be', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'could', 'should', 'may', 'might', 'must', 'shall', 'can', 'need',
    'it', 'its', 'my', 'your', 'our', 'their', 'this', 'that', 'these',
    'those', 'i', 'you', 'he', 'she', 'we', 'they', 'what', 'which',
    'who', 'whom', 'how', 'when', 'where', 'why',
])


class MinerConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')

    ngram_sizes: List[int] = Field(default_factory=lambda: [1, 2, 3])

    # Volume floor
    min_impressions: int = Field(default=50, ge=0)
    min_clicks: int = Field(default=5, ge=0)

    # Performance thresholds (fractions, 0.05 = 5%)
    high_ctr_threshold: float = Field(default=0.05, ge=0)
    low_ctr_threshold: float = Field(default=0.01, ge=0)
    high_conv_rate_threshold: float = Field(default=0.03, ge=0)

    # 0 disables CPA-based negative detection
    target_cpa: float = Field(default=0.0, ge=0)
    expensive_cpa_multiplier: float = Field(default=2.0, gt=0)

    stop_words: FrozenSet[str] = DEFAULT_STOP_WORDS
    # N-grams containing any of these are never suggested as negatives
    brand_terms: FrozenSet[str] = frozenset()
    max_results_per_category: int = Field(default=100, ge=0)
    dedupe_per_query: bool = False

    campaign_name_contains: str = ''
    campaign_name_does_not_contain: str = ''
    negative_match_type: Literal['EXACT', 'PHRASE', 'BROAD'] = 'EXACT'

    @field_validator('ngram_sizes')
    @classmethod
    def sizes_positive(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError('ngram_sizes must contain at least one size')
        bad = [size for size in v if size < 1]
        if bad:
            raise ValueError(f'ngram_sizes must be positive, got {bad}')
        return list(dict.fromkeys(v))

    @field_validator('stop_words', 'brand_terms')
    @classmethod
    def lowercase_words(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        return frozenset(word.lower() for word in v)

    @field_validator('negative_match_type', mode='before')
    @classmethod
    def uppercase_match_type(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


def load_config(data: Optional[Mapping[str, Any]] = None, **overrides: Any) -> MinerConfig:
    """
    Build a validated MinerConfig from a mapping plus keyword overrides.

    Args:
        data: Mapping of configuration values (e.g. parsed JSON)
        **overrides: Values that take precedence over ``data``

    Returns:
        Validated MinerConfig

    Raises:
        ConfigurationError: If any value is missing its constraints
    """
    payload = dict(data or {})
    payload.update(overrides)
    try:
        return MinerConfig.model_validate(payload)
    except ValidationError as exc:
        errors = '; '.join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f'Invalid configuration: {errors}') from exc


def config_from_form(form: Mapping[str, str]) -> MinerConfig:
    """
    Build a MinerConfig from submitted upload form fields.

    Blank fields keep their defaults. ``ngram_sizes``, ``stop_words`` and
    ``brand_terms`` are comma-separated lists.
    """
    overrides = {}

    numeric_fields = {
        'min_impressions': int,
        'min_clicks': int,
        'high_ctr_threshold': float,
        'low_ctr_threshold': float,
        'high_conv_rate_threshold': float,
        'target_cpa': float,
        'expensive_cpa_multiplier': float,
        'max_results_per_category': int,
    }
    for name, cast in numeric_fields.items():
        raw = (form.get(name) or '').strip()
        if not raw:
            continue
        try:
            overrides[name] = cast(raw)
        except ValueError:
            raise ConfigurationError(f"Invalid value for {name}: '{raw}'")

    sizes = (form.get('ngram_sizes') or '').strip()
    if sizes:
        try:
            overrides['ngram_sizes'] = [int(s) for s in sizes.split(',') if s.strip()]
        except ValueError:
            raise ConfigurationError(f"Invalid value for ngram_sizes: '{sizes}'")

    for name in ('stop_words', 'brand_terms'):
        words = form.get(name)
        if words is not None and words.strip():
            overrides[name] = [w.strip() for w in words.split(',') if w.strip()]

    for name in ('campaign_name_contains', 'campaign_name_does_not_contain', 'negative_match_type'):
        value = (form.get(name) or '').strip()
        if value:
            overrides[name] = value

    if (form.get('dedupe_per_query') or '').lower() in ('1', 'true', 'on', 'yes'):
        overrides['dedupe_per_query'] = True

    return load_config(overrides)
