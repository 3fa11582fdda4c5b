# niosh_table.py
# Static NIOSH List of Hazardous Drugs in Healthcare Settings (2024 edition).
# Authoritative source for hazard tier; lookups are pure and synchronous.

import logging

from hazard_models import Found, NioshEntry, NioshTable, NotFound

logger = logging.getLogger(__name__)

NIOSH_SOURCE_NAME = "NIOSH 2024"
NIOSH_SOURCE_URL = "https://www.cdc.gov/niosh"

# Queries shorter than this only match table keys they contain
MIN_PARTIAL_QUERY_LENGTH = 3

# name -> (table, hazard types, requires special handling)
NIOSH_2024_DRUGS = {
    # Table 1
    "azathioprine": (NioshTable.TABLE_1, ("Carcinogenic (IARC Group 1)",), True),
    "cyclophosphamide": (NioshTable.TABLE_1, ("Carcinogenic (IARC Group 1)",), True),
    "cisplatin": (NioshTable.TABLE_1, ("Carcinogenic (IARC Group 2A)",), True),
    "estradiol": (NioshTable.TABLE_1, ("Reproductive toxicity", "Developmental hazard"), True),
    "methotrexate": (NioshTable.TABLE_1, ("Antineoplastic", "Reproductive toxicity", "Developmental hazard"), True),
    "fluorouracil": (NioshTable.TABLE_1, ("Antineoplastic", "Developmental hazard"), True),
    "tamoxifen": (NioshTable.TABLE_1, ("Carcinogenic (IARC Group 1)", "Developmental hazard"), True),
    # Table 2
    "anastrozole": (NioshTable.TABLE_2, ("Reproductive hazard",), False),
    "dutasteride": (NioshTable.TABLE_2, ("Reproductive hazard",), False),
    "finasteride": (NioshTable.TABLE_2, ("Reproductive hazard",), False),
    "misoprostol": (NioshTable.TABLE_2, ("Reproductive hazard", "Developmental hazard"), False),
    "valproic acid": (NioshTable.TABLE_2, ("Developmental hazard",), False),
    "warfarin": (NioshTable.TABLE_2, ("Developmental hazard",), False),
    # Reviewed, not listed
    "ketoprofen": (NioshTable.NONE, (), False),
}

# Drugs removed from the hazardous list in the 2024 update
REMOVED_HAZARDOUS_DRUGS = (
    "bcg",
    "risperidone",
    "pertuzumab",
    "paliperidone",
    "liraglutide",
    "telavancin",
)

NOT_LISTED = NioshEntry(tier=NioshTable.NONE)


class NioshHazardTable:
    """Immutable lookup keyed by normalized substance name"""

    def __init__(self, drugs=None, removed=REMOVED_HAZARDOUS_DRUGS):
        source = NIOSH_2024_DRUGS if drugs is None else drugs
        self._entries = {
            self.normalize(name): NioshEntry(tier=tier, hazard_types=tuple(types), requires_special_handling=special)
            for name, (tier, types, special) in source.items()
        }
        self._removed = tuple(self.normalize(name) for name in removed)
        # Longest key first, ties alphabetical
        self._by_length = sorted(self._entries, key=lambda k: (-len(k), k))

    @staticmethod
    def normalize(name):
        return (name or "").strip().lower()

    def __len__(self):
        return len(self._entries)

    def lookup(self, name):
        """
        Return the NioshEntry for a name, or None when nothing matches.
        Order: removed-drug list, exact match, then bidirectional substring
        match where the longest matching key wins.
        """
        normalized = self.normalize(name)
        if not normalized:
            return None

        if any(removed in normalized for removed in self._removed):
            return NOT_LISTED

        entry = self._entries.get(normalized)
        if entry is not None:
            return entry

        for key in self._by_length:
            partial = len(normalized) >= MIN_PARTIAL_QUERY_LENGTH and normalized in key
            if key in normalized or partial:
                logger.debug(f"[NIOSH] '{normalized}' matched table key '{key}' by substring")
                return self._entries[key]

        return None

    def check(self, name):
        """Tagged outcome: Found only for Table 1 or Table 2 listings"""
        entry = self.lookup(name)
        if entry is None or entry.tier is NioshTable.NONE:
            return NotFound()
        return Found(entry)
