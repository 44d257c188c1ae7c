import csv
import io
import re
from dataclasses import dataclass, field
from datetime import date

from pennywise.classifiers.merchant import MerchantMappingStore
from pennywise.domain.currency import PRIMARY_CURRENCY, SECONDARY_CURRENCY, CurrencyNormalizer
from pennywise.domain.dates import normalize_date
from pennywise.domain.storage import (
    COL_BANK,
    COL_DATE,
    COL_DESCRIPTION,
    COL_MONEY_IN_AED,
    COL_MONEY_IN_GBP,
    COL_MONEY_OUT_AED,
    COL_MONEY_OUT_GBP,
)
from pennywise.errors import EmptyImportError, ImportStructureError
from pennywise.logger import get_logger
from pennywise.models import Bank, Category, TransactionDraft, TransactionType

logger = get_logger(__name__)

AUTO_CATEGORIZED_NOTE = "Auto-categorized"
UNKNOWN_DESCRIPTION = "Unknown Transaction"

_NON_NUMERIC = re.compile(r"[^0-9.-]")
_LEADING_NUMBER = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)")

_DATE_PATTERN = re.compile(r"date|time", re.IGNORECASE)
_DESCRIPTION_PATTERN = re.compile(r"desc|narrative|merchant", re.IGNORECASE)
_BANK_PATTERN = re.compile(r"bank", re.IGNORECASE)
_MONEY_OUT_GBP_PATTERN = re.compile(r"money.*out.*gbp", re.IGNORECASE)
_MONEY_IN_GBP_PATTERN = re.compile(r"money.*in.*gbp", re.IGNORECASE)
_MONEY_OUT_AED_PATTERN = re.compile(r"money.*out.*aed", re.IGNORECASE)
_MONEY_IN_AED_PATTERN = re.compile(r"money.*in.*aed", re.IGNORECASE)
_AMOUNT_PATTERN = re.compile(r"^amount$|^value$|^debit$|^credit$|^cost$", re.IGNORECASE)


def _find_column(headers: list[str], exact: str | None, pattern: re.Pattern[str]) -> str | None:
    if exact is not None and exact in headers:
        return exact
    return next((h for h in headers if pattern.search(h)), None)


def parse_amount(raw: object) -> float | None:
    """Leading number of `raw` once currency symbols and separators are stripped."""
    if raw is None:
        return None
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", str(raw)))
    if match is None:
        return None
    return float(match.group(0))


@dataclass(frozen=True)
class ColumnLayout:
    date: str | None = None
    description: str | None = None
    bank: str | None = None
    money_out_gbp: str | None = None
    money_in_gbp: str | None = None
    money_out_aed: str | None = None
    money_in_aed: str | None = None
    amount: str | None = None

    @property
    def has_multi_columns(self) -> bool:
        return any(
            (self.money_out_gbp, self.money_in_gbp, self.money_out_aed, self.money_in_aed)
        )

    @classmethod
    def detect(cls, headers: list[str]) -> "ColumnLayout":
        return cls(
            date=_find_column(headers, COL_DATE, _DATE_PATTERN),
            description=_find_column(headers, COL_DESCRIPTION, _DESCRIPTION_PATTERN),
            bank=_find_column(headers, COL_BANK, _BANK_PATTERN),
            money_out_gbp=_find_column(headers, COL_MONEY_OUT_GBP, _MONEY_OUT_GBP_PATTERN),
            money_in_gbp=_find_column(headers, COL_MONEY_IN_GBP, _MONEY_IN_GBP_PATTERN),
            money_out_aed=_find_column(headers, COL_MONEY_OUT_AED, _MONEY_OUT_AED_PATTERN),
            money_in_aed=_find_column(headers, COL_MONEY_IN_AED, _MONEY_IN_AED_PATTERN),
            amount=_find_column(headers, None, _AMOUNT_PATTERN),
        )


@dataclass
class ImportResult:
    drafts: list[TransactionDraft] = field(default_factory=list)
    parsed_count: int = 0
    auto_categorized_count: int = 0
    skipped_count: int = 0


class CsvImportParser:
    """Turns a bank CSV export into transaction drafts.

    Two layouts are understood: the store's own four money columns
    (in/out x GBP/AED), and a legacy single signed amount column whose
    currency is that of the selected bank.
    """

    def __init__(
        self,
        mappings: MerchantMappingStore | None = None,
        categories: list[Category] | None = None,
        normalizer: CurrencyNormalizer | None = None,
    ):
        self.mappings = mappings
        self.categories = categories
        self.normalizer = normalizer or CurrencyNormalizer()

    def parse(self, text: str, bank: Bank, today: date | None = None) -> ImportResult:
        reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
        headers = [h.strip() for h in (reader.fieldnames or [])]
        reader.fieldnames = headers
        layout = ColumnLayout.detect(headers)

        if not layout.date or not (layout.has_multi_columns or layout.amount):
            raise ImportStructureError(
                "Could not detect required columns. Need 'Transaction Date' + money columns "
                "(Money Out - GBP, Money In - GBP, etc.) or 'Date' + 'Amount'."
            )

        result = ImportResult()
        for row in reader:
            draft = self._parse_row(row, layout, bank, today)
            if draft is None:
                result.skipped_count += 1
                continue
            if draft.auto_categorized:
                result.auto_categorized_count += 1
            result.drafts.append(draft)

        result.parsed_count = len(result.drafts)
        if not result.drafts:
            raise EmptyImportError("No valid transactions found in file.")

        logger.info(
            "[IMPORT] Parsed %s transactions for %s (%s auto-categorized, %s skipped).",
            result.parsed_count,
            bank.name,
            result.auto_categorized_count,
            result.skipped_count,
        )
        return result

    def _amounts(
        self, row: dict[str, str], layout: ColumnLayout, bank: Bank
    ) -> tuple[bool, float, float] | None:
        """(is_income, gbp, aed) for the row, or None to skip it."""
        if layout.has_multi_columns:

            def money(column: str | None) -> float:
                if column is None:
                    return 0.0
                return parse_amount(row.get(column)) or 0.0

            in_gbp, out_gbp = money(layout.money_in_gbp), money(layout.money_out_gbp)
            in_aed, out_aed = money(layout.money_in_aed), money(layout.money_out_aed)
            is_income = in_gbp > 0 or in_aed > 0
            gbp = abs(in_gbp if is_income else out_gbp)
            aed = abs(in_aed if is_income else out_aed)
            if gbp == 0 and aed == 0:
                return None
            if gbp == 0:
                gbp = self.normalizer.to_primary(aed)
            if aed == 0:
                aed = self.normalizer.to_secondary(gbp)
            return is_income, gbp, aed

        source = parse_amount(row.get(layout.amount or ""))
        if source is None:
            return None
        gbp = abs(source * self.normalizer.rate_for(bank.currency))
        if bank.currency.upper() != PRIMARY_CURRENCY:
            aed = abs(source)
        else:
            aed = self.normalizer.to_secondary(gbp)
        return source >= 0, gbp, aed

    def _parse_row(
        self, row: dict[str, str], layout: ColumnLayout, bank: Bank, today: date | None
    ) -> TransactionDraft | None:
        amounts = self._amounts(row, layout, bank)
        if amounts is None:
            return None
        is_income, gbp, aed = amounts

        if layout.description:
            description = (row.get(layout.description) or "").strip()
        else:
            description = UNKNOWN_DESCRIPTION
        bank_name = (row.get(layout.bank) or "").strip() if layout.bank else ""

        draft = TransactionDraft(
            date=normalize_date(row.get(layout.date or ""), today),
            amount=gbp,
            amount_original=aed if aed > 0 else None,
            original_currency=SECONDARY_CURRENCY if aed > 0 else None,
            type=TransactionType.INCOME if is_income else TransactionType.EXPENSE,
            description=description,
            notes="",
            bank_name=bank_name or bank.name,
        )
        return self._auto_categorize(draft)

    def _auto_categorize(self, draft: TransactionDraft) -> TransactionDraft:
        if self.mappings is None:
            return draft
        mapping = self.mappings.classify(draft.description)
        if mapping is None:
            return draft

        category_name = mapping.category_name
        for category in self.categories or []:
            if category.id == mapping.category_id:
                category_name = category.name
                break
        return draft.model_copy(
            update={
                "category_id": mapping.category_id,
                "category_name": category_name,
                "subcategory_name": mapping.subcategory_name,
                "notes": AUTO_CATEGORIZED_NOTE,
                "auto_categorized": True,
            }
        )
