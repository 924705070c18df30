"""
Barcode Resolver Service — maps free-text order lines to catalog barcodes.

Marketplaces reorder option words ("Blue L" on one channel, "L Blue" on
another), so a plain lookup misses many lines.

Algorithm (first match wins):
1. Item name + option exactly as sold
2. Item name + option with the first word moved to the end
3. Item name + option with the last word moved to the front
4-6. Same three stages keyed by vendor code instead of item name

Exact spellings are always tried before swapped ones, so an exact catalog
entry can never be shadowed by a swapped one with the same words.
A line that matches nothing keeps canonical_key=None and is reported as a
ResolutionMiss. Misses never abort the batch.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from models.allocation import (
    BarcodeMatch,
    CatalogEntry,
    MatchField,
    MatchStage,
    OrderLine,
    ResolutionMiss,
)
from utils.text_utils import swap_first_token, swap_last_token

logger = structlog.get_logger(__name__)

# Stage order is significant
STAGES = (
    (MatchStage.EXACT, lambda option: option),
    (MatchStage.FIRST_TOKEN_SWAP, swap_first_token),
    (MatchStage.LAST_TOKEN_SWAP, swap_last_token),
)


class CatalogIndex:
    """
    Lookup tables built once per pass from the catalog.

    Two views: (item_name, option) → barcode and
    (vendor_code, option) → barcode. When the catalog repeats a pair,
    the first entry wins.
    """

    def __init__(self, entries: Iterable[CatalogEntry]):
        self.by_item: Dict[Tuple[str, str], str] = {}
        self.by_vendor: Dict[Tuple[str, str], str] = {}
        self.size = 0

        for entry in entries:
            self.size += 1
            if entry.raw_item_name:
                self.by_item.setdefault(
                    (entry.raw_item_name, entry.raw_option_name), entry.canonical_key
                )
            if entry.raw_vendor_code:
                self.by_vendor.setdefault(
                    (entry.raw_vendor_code, entry.raw_option_name), entry.canonical_key
                )

    def view(self, matched_on: MatchField) -> Dict[Tuple[str, str], str]:
        if matched_on == MatchField.ITEM_NAME:
            return self.by_item
        return self.by_vendor


CatalogLike = Union[CatalogIndex, Sequence[CatalogEntry]]


@dataclass
class ResolutionReport:
    """Result of resolving a batch of order lines."""
    lines: List[OrderLine] = field(default_factory=list)
    matches: List[BarcodeMatch] = field(default_factory=list)
    misses: List[ResolutionMiss] = field(default_factory=list)

    @property
    def resolved_count(self) -> int:
        return sum(1 for line in self.lines if line.is_resolved)


class BarcodeResolverService:
    """Resolves order lines to canonical barcodes."""

    def build_index(self, catalog: CatalogLike) -> CatalogIndex:
        if isinstance(catalog, CatalogIndex):
            return catalog
        return CatalogIndex(catalog)

    def match(
        self,
        line: OrderLine,
        catalog: CatalogLike,
    ) -> Optional[BarcodeMatch]:
        """
        Find the catalog entry for one order line.

        Args:
            line: Order line to resolve (its own canonical_key is ignored)
            catalog: Catalog entries or a prebuilt CatalogIndex

        Returns:
            BarcodeMatch with the field and stage that matched, or None
        """
        index = self.build_index(catalog)
        option = line.raw_option_name

        for matched_on, name in (
            (MatchField.ITEM_NAME, line.raw_item_name),
            (MatchField.VENDOR_CODE, line.raw_vendor_code),
        ):
            if not name:
                continue
            view = index.view(matched_on)
            for stage, spell in STAGES:
                key = view.get((name, spell(option)))
                if key is not None:
                    return BarcodeMatch(
                        order_id=line.id,
                        canonical_key=key,
                        matched_on=matched_on,
                        stage=stage,
                    )

        return None

    def resolve(self, line: OrderLine, catalog: CatalogLike) -> Optional[str]:
        """
        Resolve one order line to a barcode.

        Returns:
            The barcode, or None when every stage misses (NotFound)
        """
        found = self.match(line, catalog)
        return found.canonical_key if found else None

    def resolve_batch(
        self,
        lines: Sequence[OrderLine],
        catalog: CatalogLike,
    ) -> ResolutionReport:
        """
        Resolve every line of a batch against one catalog index.

        Lines that already carry a barcode keep it. Returned lines keep
        input order; resolved lines are copies with canonical_key set.
        """
        index = self.build_index(catalog)
        report = ResolutionReport()

        for line in lines:
            if line.is_resolved:
                report.lines.append(line)
                continue

            found = self.match(line, index)
            if found is None:
                logger.debug(
                    "barcode_not_found",
                    order_id=line.id,
                    item_name=line.raw_item_name,
                    option_name=line.raw_option_name,
                )
                report.misses.append(ResolutionMiss(
                    order_id=line.id,
                    raw_item_name=line.raw_item_name,
                    raw_option_name=line.raw_option_name,
                    raw_vendor_code=line.raw_vendor_code,
                ))
                report.lines.append(line)
                continue

            report.matches.append(found)
            report.lines.append(
                line.model_copy(update={"canonical_key": found.canonical_key})
            )

        logger.info(
            "barcode_resolution_complete",
            lines=len(lines),
            catalog_entries=index.size,
            matched=len(report.matches),
            missed=len(report.misses),
        )

        return report


# Singleton
_barcode_resolver_service: Optional[BarcodeResolverService] = None


def get_barcode_resolver_service() -> BarcodeResolverService:
    """Get the singleton barcode resolver service instance."""
    global _barcode_resolver_service
    if _barcode_resolver_service is None:
        _barcode_resolver_service = BarcodeResolverService()
    return _barcode_resolver_service
