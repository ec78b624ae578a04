"""
Domain models for insider transaction filings.

FilingDescriptor is one row of a daily index; ExtractedFiling is one row of
final output. All identifiers and extracted values are kept as strings:
CIKs carry leading zeros, and numeric/date parsing is left to consumers.
"""

from dataclasses import astuple, dataclass


# Output header, in row order.
OUTPUT_COLUMNS: tuple[str, ...] = (
    "ISSUER_CIK",
    "REPORTER_CIK",
    "ACCESSION_NUMBER",
    "NAME_OF_REPORTING_PERSON",
    "A_OR_D",
    "AMOUNT",
    "PRICE",
    "TRANSACTION_DATE",
    "TITLE_OF_SECURITY",
    "ISSUER_NAME",
    "ISSUER_TICKER",
    "IS_DIRECTOR",
    "IS_OFFICER",
    "IS_TEN_PERCENT_OWNER",
    "IS_OTHER_RELATIONSHIP",
    "NEW_AMOUNT_OWNED",
    "DIRECT_OR_INDIRECT_OWNERSHIP",
)


def normalize_accession_number(file_name: str) -> str:
    """
    Derive the 18-digit accession number from an index file name.

    "edgar/data/320193/0000320193-22-000050.txt" -> "000032019322000050".
    Idempotent: an already-normalized value is returned unchanged.
    """
    accession = file_name.split(".txt")[0]
    accession = accession.split("/")[-1]
    return accession.replace("-", "")


@dataclass(frozen=True)
class FilingDescriptor:
    """One filing listed in a daily index file."""
    cik: str
    company_name: str
    form_type: str
    date_filed: str
    file_name: str
    accession_number: str

    @classmethod
    def from_index_fields(
        cls,
        cik: str,
        company_name: str,
        form_type: str,
        date_filed: str,
        file_name: str,
    ) -> "FilingDescriptor":
        """Build a descriptor, deriving the accession number from the file name."""
        return cls(
            cik=cik,
            company_name=company_name,
            form_type=form_type,
            date_filed=date_filed,
            file_name=file_name,
            accession_number=normalize_accession_number(file_name),
        )

    @property
    def document_key(self) -> str:
        """Cache key of the composite filing document."""
        return f"{self.cik}_{self.accession_number}.txt"


@dataclass(frozen=True)
class ExtractedFiling:
    """One output row. Field order matches OUTPUT_COLUMNS."""
    issuer_cik: str
    reporter_cik: str
    accession_number: str
    reporting_person_name: str
    acquired_disposed_code: str
    amount: str
    price: str
    transaction_date: str
    security_title: str
    issuer_name: str
    issuer_ticker: str
    is_director: str
    is_officer: str
    is_ten_percent_owner: str
    is_other_relationship: str
    new_amount_owned: str
    direct_or_indirect_ownership: str

    def as_row(self) -> list[str]:
        """Values in OUTPUT_COLUMNS order."""
        return list(astuple(self))

    def to_dict(self) -> dict[str, str]:
        return dict(zip(OUTPUT_COLUMNS, self.as_row()))
