"""
Candidate Indexer
Builds the ordered, addressable candidate list the oracle chooses from.
"""

from typing import Dict, Iterable, List

from plrecon.schemas.candidate import CandidateRecord, NamedCollection
from plrecon.errors import ValidationError
from plrecon.utils.logging import setup_logging


logger = setup_logging(__name__)


class CandidateIndexer:
    """
    Turns reference collections into CandidateRecords.

    Each record is addressed by "<collection>:<row address>", where the row
    address comes from the collection itself. Blank names are dropped, but
    since the address belongs to the row and not to its position in the
    filtered list, dropping rows never shifts the references of the others.
    """

    def build(self, collections: Iterable[NamedCollection]) -> List[CandidateRecord]:
        candidates: List[CandidateRecord] = []
        seen = set()

        for collection in collections:
            collection_name = collection.name()
            skipped = 0

            for row in collection.rows():
                text = (row.text or "").strip()
                if not text:
                    skipped += 1
                    continue

                reference = f"{collection_name}:{row.address}"
                if reference in seen:
                    raise ValidationError(f"Duplicate candidate reference: {reference}")
                seen.add(reference)

                candidates.append(
                    CandidateRecord(reference=reference, text=text, collection=collection_name)
                )

            logger.debug(
                f"[CandidateIndexer] Collection '{collection_name}': "
                f"{skipped} blank rows skipped"
            )

        logger.info(f"[CandidateIndexer] Built {len(candidates)} candidates")
        return candidates

    @staticmethod
    def lookup(candidates: Iterable[CandidateRecord]) -> Dict[str, CandidateRecord]:
        """Map each reference to its candidate."""
        return {candidate.reference: candidate for candidate in candidates}
