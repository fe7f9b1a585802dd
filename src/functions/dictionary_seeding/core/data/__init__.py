from .seed_terms import SEED_TERMS, SeedTerm, high_priority_terms, lookup, term_type_for

__all__ = ["SEED_TERMS", "SeedTerm", "high_priority_terms", "lookup", "term_type_for"]
