"""Service layer for digestion, ligation, assembly and part design."""
