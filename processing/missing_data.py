"""
Missing master data detection and resolution.

Before any weight is computed, every merged item's product code must have a
product master record. Codes without one stop the run; an operator enters
the missing records (interactively or through ``sli products add``) and the
run resumes from the cached aggregation.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from database.database import DatabaseManager
from database.models import ProductMasterRecord, ResolutionLogEntry
from .exceptions import MissingMasterDataError
from .models import MergedItem


logger = logging.getLogger(__name__)


def find_missing(merged: Iterable[MergedItem],
                 master: Mapping[str, ProductMasterRecord]) -> Set[str]:
    """Distinct product codes of ``merged`` that have no entry in ``master``."""
    return {item.product_code for item in merged if item.product_code not in master}


class MissingDataResolver:
    """
    Gate between aggregation and weight computation.

    All master-data writes made while resolving go through resolve(), which
    uses the store's serialized upsert and records each step in the
    resolution log.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def lookup(self, merged: Iterable[MergedItem]) -> Dict[str, ProductMasterRecord]:
        """One batched lookup of every product code in ``merged``."""
        return self.db_manager.lookup_products(item.product_code for item in merged)

    def check(self, merged: List[MergedItem],
              session_id: Optional[str] = None) -> Dict[str, ProductMasterRecord]:
        """
        Return the master records for ``merged`` or stop the run.

        Raises:
            MissingMasterDataError: If any code has no master record. Each
                missing code is written to the resolution log first.
        """
        master = self.lookup(merged)
        missing = find_missing(merged, master)

        if missing:
            for code in sorted(missing):
                self.db_manager.create_resolution_log(ResolutionLogEntry(
                    product_code=code,
                    action_taken='missing',
                    session_id=session_id
                ))
            self.logger.warning(f"Missing master data for: {', '.join(sorted(missing))}")
            raise MissingMasterDataError(missing)

        self.logger.debug(f"All {len(master)} product codes have master data")
        return master

    def resolve(self, record: ProductMasterRecord,
                session_id: Optional[str] = None,
                notes: Optional[str] = None) -> ProductMasterRecord:
        """
        Store one operator-entered master record.

        Writing a code that already exists overwrites it (last writer wins).
        """
        stored, created = self.db_manager.upsert_product(record)
        self.db_manager.create_resolution_log(ResolutionLogEntry(
            product_code=stored.product_code,
            action_taken='added' if created else 'updated',
            session_id=session_id,
            notes=notes
        ))
        self.logger.info(
            f"Resolved master data for {stored.product_code} "
            f"({'added' if created else 'updated'})"
        )
        return stored

    def flag_degenerate(self, codes: Iterable[str],
                        session_id: Optional[str] = None) -> None:
        """Record products whose carton quantity made them unusable for gross weight."""
        for code in codes:
            self.db_manager.create_resolution_log(ResolutionLogEntry(
                product_code=code,
                action_taken='flagged',
                session_id=session_id,
                notes='units_per_carton <= 0; excluded from gross weight'
            ))
