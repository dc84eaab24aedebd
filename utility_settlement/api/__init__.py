"""HTTP surface of the settlement engine."""
