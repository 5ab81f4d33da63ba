from .ranking import FuzzyMatch, SearchResult, fuzzy_match, rank

__all__ = ["FuzzyMatch", "SearchResult", "fuzzy_match", "rank"]
