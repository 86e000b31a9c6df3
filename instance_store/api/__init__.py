"""HTTP surface for the instance store."""
