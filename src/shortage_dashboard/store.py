"""
Aggregation store for the shortage dashboard.

The store is an explicitly constructed context object: it holds the
filter state, the date range derived from the report date, the product
lists and the raw incidents of the last applied fetch. Monthly
rupture/tension series are memoised behind an ``AggregateCache`` whose
key strategy can be swapped.
"""
import abc
import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from shared.domain.dates import add_months, first_of_month, month_range, months_since
from shared.domain.model import Incident, Status, parse_incidents

logger = logging.getLogger(__name__)

# Epoch of the "all time" period selector.
ALL_TIME_START = date(2021, 5, 1)

INITIAL = "initial"
FILTERED = "filtered"
NO_RESULTS = "no_results"


@dataclass(frozen=True)
class FilterState:
    search_term: str = ""
    atc_class: str = ""
    molecule_id: str = ""
    months_to_show: int = 12
    vaccines_only: bool = False

    def __post_init__(self):
        if (
            isinstance(self.months_to_show, bool)
            or not isinstance(self.months_to_show, int)
            or self.months_to_show <= 0
        ):
            raise ValueError(f"months_to_show must be a positive integer, got {self.months_to_show!r}")

    def replace(self, **changes) -> "FilterState":
        return dataclasses.replace(self, **changes)

    @property
    def is_filtered(self) -> bool:
        return bool(self.search_term or self.atc_class or self.molecule_id or self.vaccines_only)

    def as_query_params(self) -> Dict[str, str]:
        """Query string parameters of ``GET /api/incidents``."""
        params = {
            "monthsToShow": str(self.months_to_show),
            "product": self.search_term,
            "atcClass": self.atc_class,
        }
        if self.molecule_id:
            params["molecule"] = self.molecule_id
        if self.vaccines_only:
            params["vaccinesOnly"] = "true"
        return params


@dataclass(frozen=True)
class MonthlyAggregate:
    date: date
    rupture: int
    tension: int

    def as_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "rupture": self.rupture, "tension": self.tension}


@dataclass(frozen=True)
class MoleculeOption:
    molecule_id: str
    molecule: str
    atc_code: str


@dataclass(frozen=True)
class AtcClass:
    code: str
    name: str


def months_for_all_time(report_date: date) -> int:
    """Months to show so that the window starts at ``ALL_TIME_START``."""
    return months_since(ALL_TIME_START, report_date)


def get_date_range(last_report_date: date, months_to_show: int) -> Tuple[date, date]:
    """
    ``(start, end)`` where ``end`` is the first day of the month after the
    report month and ``start`` is ``months_to_show`` months earlier.

    ``end`` is exclusive when generating month buckets and inclusive when
    used as a scale domain.
    """
    end = add_months(first_of_month(last_report_date), 1)
    return add_months(end, -months_to_show), end


def compute_monthly_series(
    incidents: List[Incident], start: date, end: date
) -> List[MonthlyAggregate]:
    """Package counts in rupture and tension on the first day of every month in ``[start, end)``."""
    series = []
    for month in month_range(start, end):
        rupture = 0
        tension = 0
        for incident in incidents:
            if not incident.is_active_at(month):
                continue
            if incident.status == Status.SHORTAGE:
                rupture += incident.package_count
            elif incident.status == Status.TENSION:
                tension += incident.package_count
        series.append(MonthlyAggregate(month, rupture, tension))
    return series


class AggregateCache(abc.ABC):
    """Single-entry memo for the monthly series; subclasses choose the key."""

    def __init__(self):
        self._key: Optional[Hashable] = None
        self._value: Optional[List[MonthlyAggregate]] = None
        self.hits = 0
        self.misses = 0

    @abc.abstractmethod
    def make_key(self, incidents: List[Incident], start: date, end: date) -> Hashable:
        raise NotImplementedError

    def get_or_compute(
        self,
        incidents: List[Incident],
        start: date,
        end: date,
        compute: Callable[[List[Incident], date, date], List[MonthlyAggregate]],
    ) -> List[MonthlyAggregate]:
        key = self.make_key(incidents, start, end)
        if self._value is not None and key == self._key:
            self.hits += 1
            return self._value
        self.misses += 1
        self._value = compute(incidents, start, end)
        self._key = key
        return self._value

    def clear(self):
        self._key = None
        self._value = None


class LengthKeyedCache(AggregateCache):
    """
    Keys on ``(start, end, number of incidents)``.

    Two different incident lists of the same length over the same range
    collide and the stale series is returned. Kept as the default: it is
    how the dashboard has always behaved.
    """

    def make_key(self, incidents, start, end):
        return (start, end, len(incidents))


class ContentKeyedCache(AggregateCache):
    """Keys on the range plus every field the series depends on."""

    def make_key(self, incidents, start, end):
        return (
            start,
            end,
            tuple(
                (i.product, i.status, i.start_date, i.calculated_end_date, i.package_count)
                for i in incidents
            ),
        )


def unique_in_order(values) -> List:
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


class AggregationStore:
    def __init__(self, filters: Optional[FilterState] = None, cache: Optional[AggregateCache] = None):
        self.filters = filters or FilterState()
        self.cache = cache or LengthKeyedCache()
        self.report_date: Optional[date] = None
        self.start_date: Optional[date] = None
        self.end_date: Optional[date] = None
        self.products: List[str] = []
        self.accented_products: List[str] = []
        self.raw_incidents: List[Incident] = []
        self.molecule_class_map: List[MoleculeOption] = []
        self.atc_classes: List[AtcClass] = []
        self.display_state = INITIAL

    def set_filters(self, filters: FilterState):
        self.filters = filters

    def set_products(self, rows: List[Any]):
        """Distinct product names in order of first appearance."""
        self.products = unique_in_order(_field(row, "product") for row in rows)

    def set_accented_products(self, rows: List[Any]):
        """
        Display names paired by index with ``products``: the accented name
        of each product's first row.
        """
        first_seen: Dict[str, str] = {}
        for row in rows:
            product = _field(row, "product")
            if product not in first_seen:
                first_seen[product] = _field(row, "accented_product") or product
        self.accented_products = [first_seen[product] for product in first_seen]

    def accented_name(self, product: str) -> str:
        try:
            return self.accented_products[self.products.index(product)]
        except (ValueError, IndexError):
            return product

    def set_date_range(self, last_report_date: date, months_to_show: int):
        self.report_date = last_report_date
        self.start_date, self.end_date = get_date_range(last_report_date, months_to_show)

    def compute_monthly_aggregate(
        self,
        incidents: Optional[List[Incident]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[MonthlyAggregate]:
        """Monthly series over ``[start, end)``, defaulting to the store's incidents and range."""
        incidents = self.raw_incidents if incidents is None else incidents
        start = start or self.start_date
        end = end or self.end_date
        if start is None or end is None:
            raise ValueError("Date range is not set; ingest incidents first")
        return self.cache.get_or_compute(incidents, start, end, compute_monthly_series)

    def ingest(self, rows: List[Dict[str, Any]], months_to_show: Optional[int] = None) -> List[Incident]:
        """
        Apply a fetched incident payload.

        The report date only moves forward: it is the later of the current
        one and the latest calculated end in the payload.
        """
        months_to_show = months_to_show or self.filters.months_to_show
        incidents = parse_incidents(rows)
        end_dates = [i.calculated_end_date for i in incidents if i.calculated_end_date]
        candidates = [d for d in [self.report_date, max(end_dates, default=None)] if d]
        if candidates:
            self.set_date_range(max(candidates), months_to_show)

        self.raw_incidents = incidents
        self.set_products(incidents)
        self.set_accented_products(incidents)
        if not self.molecule_class_map:
            self.set_molecule_class_map(incidents)

        if not incidents:
            self.display_state = NO_RESULTS
        elif self.filters.is_filtered:
            self.display_state = FILTERED
        else:
            self.display_state = INITIAL

        logger.info(
            f"Ingested {len(incidents)} incidents for {len(self.products)} products, "
            f"report date {self.report_date}"
        )
        return incidents

    def set_molecule_class_map(self, rows: List[Any]):
        """Unique molecule -> ATC code pairs, sorted by molecule name (last row wins per molecule)."""
        mapping: Dict[Tuple[str, str], str] = {}
        for row in rows:
            molecule_id = _field(row, "molecule_id")
            if molecule_id is None:
                continue
            molecule = _field(row, "molecule")
            mapping[(str(molecule_id), molecule or "")] = _field(row, "atc_code") or ""
        options = [
            MoleculeOption(molecule_id, molecule, atc_code)
            for (molecule_id, molecule), atc_code in mapping.items()
        ]
        self.molecule_class_map = sorted(options, key=lambda option: option.molecule.casefold())

    def molecules_for_class(self, atc_class: str = "") -> List[MoleculeOption]:
        if not atc_class:
            return list(self.molecule_class_map)
        return [m for m in self.molecule_class_map if m.atc_code.startswith(atc_class)]

    def set_atc_classes(self, rows: List[Any]):
        """``"A - Voies digestives"`` -> ``AtcClass("A", "Voies digestives")``, sorted and unique."""
        labels = sorted({_field(row, "classe_atc") for row in rows if _field(row, "classe_atc")})
        self.atc_classes = [AtcClass(label[:1], label[4:]) for label in labels]

    def incidents_for(self, product: str) -> List[Incident]:
        return [i for i in self.raw_incidents if i.product == product]

    def current_totals(self) -> Dict[str, int]:
        """Packages in rupture and tension at the report date."""
        totals = {"rupture": 0, "tension": 0}
        if self.report_date is None:
            return totals
        for incident in self.raw_incidents:
            if not incident.is_active_at(self.report_date):
                continue
            if incident.status == Status.SHORTAGE:
                totals["rupture"] += incident.package_count
            elif incident.status == Status.TENSION:
                totals["tension"] += incident.package_count
        return totals


def _field(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)
