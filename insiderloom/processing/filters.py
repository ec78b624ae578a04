"""Order-preserving selection of filings."""

from typing import Callable, Iterable

from ..core.models import FilingDescriptor

FilingPredicate = Callable[[FilingDescriptor], bool]

OWNERSHIP_FORM_TYPES = frozenset({"4", "4/A"})


def form_type_predicate(form_types: Iterable[str] = OWNERSHIP_FORM_TYPES) -> FilingPredicate:
    """Exact, case-sensitive match on form type."""
    wanted = frozenset(form_types)

    def predicate(filing: FilingDescriptor) -> bool:
        return filing.form_type in wanted

    return predicate


def filter_filings(
    filings: Iterable[FilingDescriptor],
    predicate: FilingPredicate,
) -> list[FilingDescriptor]:
    """Filings satisfying predicate, in input order."""
    return [f for f in filings if predicate(f)]
