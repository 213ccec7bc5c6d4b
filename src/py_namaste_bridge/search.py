# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
from typing import List, Optional

from .exceptions import InvalidInputError
from .models import ICD11, NAMASTE, TM2, SearchActivity, SearchResults
from .repository import TerminologyRepository


class SearchAggregator:
    """Fans a free-text query out to all three code systems and logs the search."""

    def __init__(self, repository: TerminologyRepository):
        self.repository = repository

    def search_all(self, query: str) -> SearchResults:
        if not query or not query.strip():
            raise InvalidInputError("A search query is required")

        results = SearchResults(
            icd_codes=self.repository.search_codes(ICD11, query),
            namaste_codes=self.repository.search_codes(NAMASTE, query),
            tm2_codes=self.repository.search_codes(TM2, query),
        )
        self.repository.log_search_activity(query, results.total)
        return results

    def recent_activity(self, limit: Optional[int] = None) -> List[SearchActivity]:
        return self.repository.recent_search_activity(limit)
