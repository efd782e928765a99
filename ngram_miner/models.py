"""
Data Model for the N-gram Miner
Query records coming in, n-gram aggregates built during a run, and the
recommendations handed to the reporting layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import InvalidRecordError
from .metrics import (
    calculate_conv_rate,
    calculate_cpa,
    calculate_cpc,
    calculate_ctr,
    calculate_roas,
)


class Category(str, Enum):
    KEYWORD_OPPORTUNITY = 'KEYWORD_OPPORTUNITY'
    NEGATIVE_CANDIDATE = 'NEGATIVE_CANDIDATE'


@dataclass(frozen=True)
class QueryRecord:
    """
    One observed search query within a reporting window.

    Clicks are not guaranteed to be <= impressions; the pipeline tolerates it.
    """
    text: str
    campaign: str = ''
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0


@dataclass
class NgramAggregate:
    """
    Accumulated statistics for one distinct n-gram at one n-gram size.

    Derived rates are properties so they always reflect the current sums.
    """
    ngram_text: str
    size: int
    query_count: int = 0
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0

    def add(self, record: QueryRecord) -> None:
        """Fold one query's metrics into the running totals."""
        self.impressions += record.impressions
        self.clicks += record.clicks
        self.cost += record.cost
        self.conversions += record.conversions
        self.conversion_value += record.conversion_value
        self.query_count += 1

    def merge(self, other: 'NgramAggregate') -> None:
        """Sum another partial aggregate for the same n-gram into this one."""
        if other.ngram_text != self.ngram_text or other.size != self.size:
            raise ValueError(
                f"Cannot merge '{other.ngram_text}' ({other.size}) into "
                f"'{self.ngram_text}' ({self.size})"
            )
        self.query_count += other.query_count
        self.impressions += other.impressions
        self.clicks += other.clicks
        self.cost += other.cost
        self.conversions += other.conversions
        self.conversion_value += other.conversion_value

    @property
    def ctr(self) -> float:
        return calculate_ctr(self.clicks, self.impressions)

    @property
    def cpc(self) -> float:
        return calculate_cpc(self.cost, self.clicks)

    @property
    def conv_rate(self) -> float:
        return calculate_conv_rate(self.conversions, self.clicks)

    @property
    def cpa(self) -> float:
        return calculate_cpa(self.cost, self.conversions)

    @property
    def roas(self) -> float:
        return calculate_roas(self.conversion_value, self.cost)


@dataclass(frozen=True)
class Recommendation:
    """A classified n-gram with a snapshot of its metrics."""
    ngram_text: str
    size: int
    category: Category
    reason: str
    query_count: int = 0
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    conv_rate: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0

    @classmethod
    def from_aggregate(cls, aggregate: NgramAggregate, category: Category,
                       reason: str) -> 'Recommendation':
        return cls(
            ngram_text=aggregate.ngram_text,
            size=aggregate.size,
            category=category,
            reason=reason,
            query_count=aggregate.query_count,
            impressions=aggregate.impressions,
            clicks=aggregate.clicks,
            cost=aggregate.cost,
            conversions=aggregate.conversions,
            conversion_value=aggregate.conversion_value,
            ctr=aggregate.ctr,
            cpc=aggregate.cpc,
            conv_rate=aggregate.conv_rate,
            cpa=aggregate.cpa,
            roas=aggregate.roas,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ngram': self.ngram_text,
            'size': self.size,
            'category': self.category.value,
            'reason': self.reason,
            'queries': self.query_count,
            'impressions': self.impressions,
            'clicks': self.clicks,
            'cost': self.cost,
            'conversions': self.conversions,
            'conversion_value': self.conversion_value,
            'ctr': self.ctr,
            'cpc': self.cpc,
            'conv_rate': self.conv_rate,
            'cpa': self.cpa,
            'roas': self.roas,
        }


class QueryRecordInput(BaseModel):
    """Validation schema for query records posted as JSON."""
    model_config = ConfigDict(extra='forbid')

    text: str
    campaign: str = ''
    impressions: int = Field(default=0, ge=0)
    clicks: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0)
    conversions: float = Field(default=0.0, ge=0)
    conversion_value: float = Field(default=0.0, ge=0)

    def to_record(self) -> QueryRecord:
        return QueryRecord(**self.model_dump())


def load_records(rows: Iterable[Mapping[str, Any]]) -> List[QueryRecord]:
    """
    Validate raw record mappings and convert them into QueryRecords.

    Args:
        rows: One mapping per query (e.g. parsed JSON)

    Returns:
        List of QueryRecords in input order

    Raises:
        InvalidRecordError: If any row is not a mapping, has unknown fields,
            mistyped values or negative metrics
    """
    records = []
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InvalidRecordError(f'Record {index}: expected an object')
        try:
            records.append(QueryRecordInput.model_validate(row).to_record())
        except ValidationError as exc:
            errors = '; '.join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise InvalidRecordError(f'Record {index}: {errors}') from exc
    return records
